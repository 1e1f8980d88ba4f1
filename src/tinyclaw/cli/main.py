"""TinyClaw CLI — invoke agents, inspect routing and observer memory locally.

Usage:
    tinyclaw invoke coder "fix the login bug"     # One turn, print the response
    tinyclaw invoke coder "start over" --reset    # Fresh conversation
    tinyclaw invoke lead "plan it" --route        # Also show teammate mentions
    tinyclaw mentions lead "[@coder: do X]"       # Parse mentions from text/stdin
    tinyclaw observer coder                       # Formatted observer context
    tinyclaw teams                                # Teams, leaders, members
    tinyclaw adapters                             # Backend availability
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import sys
from typing import Optional

import click

from tinyclaw import __version__
from tinyclaw.config import ConfigError, TeamSettings, load_team_settings, settings
from tinyclaw.logging_config import configure_logging

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop: normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _load_tables() -> TeamSettings:
    try:
        return load_team_settings(settings.settings_file)
    except ConfigError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


def _team_of(agent_id: str, tables: TeamSettings) -> str:
    from tinyclaw.routing import find_team

    found = find_team(agent_id, tables.teams)
    return found[0] if found else ""


def _print_mentions(mentions) -> None:
    if not mentions:
        click.echo("No teammate mentions.")
        return
    click.secho(f"Mentions ({len(mentions)}):", bold=True)
    for m in mentions:
        click.secho(f"  -> @{m.teammate_id}", fg="cyan")
        for line in m.message.splitlines():
            click.echo(f"     {line}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="tinyclaw")
def main():
    """TinyClaw — multi-agent invocation, routing and observer memory."""
    configure_logging(settings.log_level, settings.log_json)


# ---------------------------------------------------------------------------
# tinyclaw invoke
# ---------------------------------------------------------------------------


@main.command()
@click.argument("agent_id")
@click.argument("message")
@click.option("--reset", is_flag=True, help="Start a fresh conversation")
@click.option("--route", is_flag=True, help="Print teammate mentions in the response")
def invoke(agent_id: str, message: str, reset: bool, route: bool):
    """Send MESSAGE to AGENT_ID and print the response."""
    tables = _load_tables()
    agent = tables.agents.get(agent_id)
    if agent is None:
        click.secho(f"Error: agent '{agent_id}' not found", fg="red", err=True)
        sys.exit(1)

    _run(_invoke_impl(agent_id, message, reset, route, tables))


async def _invoke_impl(
    agent_id: str, message: str, reset: bool, route: bool, tables: TeamSettings
):
    from tinyclaw.agent import AgentInvoker, InvocationError
    from tinyclaw.routing import extract_mentions

    invoker = AgentInvoker(settings)
    try:
        result = await invoker.invoke(
            tables.agents[agent_id],
            agent_id,
            message,
            settings.workspace_path,
            reset,
            tables.agents,
            tables.teams,
        )
    except InvocationError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    click.echo(result.response)
    if result.session_id:
        click.secho(f"\nsession: {result.session_id}", dim=True)

    if route:
        click.echo()
        _print_mentions(
            extract_mentions(
                result.response,
                agent_id,
                _team_of(agent_id, tables),
                tables.teams,
                tables.agents,
            )
        )

    # Let a scheduled observer recording finish before the loop closes
    pending = [
        t for t in asyncio.all_tasks() if t.get_name().startswith("observer-record-")
    ]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


# ---------------------------------------------------------------------------
# tinyclaw mentions
# ---------------------------------------------------------------------------


@main.command()
@click.argument("agent_id")
@click.argument("text", required=False)
def mentions(agent_id: str, text: Optional[str]):
    """Show which teammates AGENT_ID's TEXT (or stdin) would be routed to."""
    from tinyclaw.routing import extract_mentions

    tables = _load_tables()
    if text is None:
        text = sys.stdin.read()

    _print_mentions(
        extract_mentions(
            text, agent_id, _team_of(agent_id, tables), tables.teams, tables.agents
        )
    )


# ---------------------------------------------------------------------------
# tinyclaw observer
# ---------------------------------------------------------------------------


@main.command()
@click.argument("agent_id")
@click.option("--raw", is_flag=True, help="Print the raw state as JSON")
def observer(agent_id: str, raw: bool):
    """Show AGENT_ID's observer memory as it would be injected."""
    from tinyclaw.observer import format_context, load_state

    state = load_state(agent_id, settings.workspace_path)
    if state is None:
        click.echo(f"No observer state for {agent_id}.")
        return

    if raw:
        click.echo(json.dumps(state.model_dump(), indent=2))
        return

    click.secho(
        f"{state.observation_count} observations, "
        f"{state.reflection_count} reflections, "
        f"{state.total_tokens_observed} tokens observed "
        f"(last: {state.last_observed_at or '—'})",
        bold=True,
    )
    click.echo()
    click.echo(format_context(state))


# ---------------------------------------------------------------------------
# tinyclaw teams
# ---------------------------------------------------------------------------


@main.command()
def teams():
    """List teams with their leader and members."""
    tables = _load_tables()
    if not tables.teams:
        click.echo("No teams configured.")
        return

    click.secho(f"Teams ({len(tables.teams)}):", bold=True)
    click.echo()
    for team_id, team in tables.teams.items():
        click.echo(f"  @{team_id:20s}  {team.name}")
        for member in team.agents:
            agent = tables.agents.get(member)
            name = agent.name if agent else click.style("not configured", fg="red")
            leader = click.style(" (leader)", fg="yellow") if member == team.leader_agent else ""
            click.echo(f"      @{member:18s}  {name}{leader}")


# ---------------------------------------------------------------------------
# tinyclaw adapters
# ---------------------------------------------------------------------------


@main.command()
def adapters():
    """List backend adapters and whether their CLI is installed."""
    from tinyclaw.agent.adapters import get_adapter, list_adapters

    click.secho("Available adapters:", bold=True)
    click.echo()
    for provider in list_adapters():
        adapter = get_adapter(provider)
        ok, msg = adapter.validate_environment()
        if ok:
            status_str = click.style("ready", fg="green")
        else:
            status_str = click.style(f"not ready — {msg}", fg="red")
        click.echo(f"  {provider.value:10s}  {adapter.name:10s}  {status_str}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
