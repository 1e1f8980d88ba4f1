"""Agent invoker — run one agent turn end-to-end through its backend adapter.

Learn: The invoker bridges the caller (queue / CLI, which decides WHEN
an agent runs) with the adapters (which decide HOW the backend is
driven). Per invocation it:
1. Resolves the agent's working directory
2. Picks the adapter for the agent's provider
3. Assembles the system prompt append (observer context + team block)
4. Prefixes a clearance notice when a reset discards a conversation
   that the observer still remembers
5. Runs the adapter and normalizes the result
6. Hands the exchange to the observer in the background

Concurrency: invocations share no state, so different agents can run
in parallel freely. Two concurrent turns for the SAME agent are not
serialized here; the caller owns that ordering.
"""

import time
from pathlib import Path
from typing import Optional

import structlog

from tinyclaw.agent.adapters import AdapterConfig, InvocationResult, get_adapter
from tinyclaw.agent.adapters.claude import EventStreamClient
from tinyclaw.config import AgentConfig, Provider, Settings, TeamConfig
from tinyclaw.config import settings as default_settings
from tinyclaw.observer import format_context, load_state, schedule_record_exchange
from tinyclaw.routing import build_instruction_block, find_team

logger = structlog.get_logger()

RESET_NOTICE = (
    "[System notice: your previous conversation was cleared. The observer "
    "context in your system prompt is your memory of record for everything "
    "before this message.]"
)


def resolve_working_directory(
    agent: AgentConfig, agent_id: str, workspace_root: str | Path
) -> Path:
    """Agent's working dir: explicit override (absolute or workspace-relative)
    or workspace_root/agent_id."""
    workspace_root = Path(workspace_root).expanduser()
    if agent.working_directory:
        override = Path(agent.working_directory).expanduser()
        return override if override.is_absolute() else workspace_root / override
    return workspace_root / agent_id


def build_system_prompt(
    agent: AgentConfig,
    agent_id: str,
    workspace_root: str | Path,
    teams: dict[str, TeamConfig],
    agents: Optional[dict[str, AgentConfig]] = None,
) -> tuple[str, bool]:
    """Assemble the system prompt append.

    Returns (append_text, has_observer_context). Order: observer context
    first, team instructions second, separated by a blank line.
    """
    sections: list[str] = []
    has_observer_context = False

    if agent.observer_enabled:
        state = load_state(agent_id, workspace_root)
        if state is not None and state.has_observations:
            sections.append(format_context(state))
            has_observer_context = True

    found = find_team(agent_id, teams)
    if found is not None:
        team_id, team = found
        block = build_instruction_block(agent_id, team_id, team, agents)
        if block:
            sections.append(block)

    return "\n\n".join(sections), has_observer_context


class AgentInvoker:
    """Runs agent turns via adapters.

    Learn: Stateless apart from its collaborators. The stream client is
    injected (and shared by every anthropic invocation) so tests can
    drive the native path without a live backend.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        stream_client: Optional[EventStreamClient] = None,
    ):
        self.settings = settings or default_settings
        self.stream_client = stream_client

    async def invoke(
        self,
        agent: AgentConfig,
        agent_id: str,
        message: str,
        workspace_root: str | Path,
        reset: bool,
        agents: dict[str, AgentConfig],
        teams: dict[str, TeamConfig],
    ) -> InvocationResult:
        """Invoke one agent with one inbound message.

        Raises InvocationError (or a subclass) if the backend fails.
        Observer recording failures never surface here.
        """
        with structlog.contextvars.bound_contextvars(agent_id=agent_id):
            working_dir = resolve_working_directory(agent, agent_id, workspace_root)
            working_dir.mkdir(parents=True, exist_ok=True)

            adapter = get_adapter(agent.provider, stream_client=self.stream_client)
            logger.info(
                "invoke.provider_selected",
                provider=adapter.provider.value,
                adapter=adapter.name,
                reset=reset,
            )

            outbound = message
            system_prompt_append = ""
            timeout_seconds = None
            if adapter.provider is Provider.ANTHROPIC:
                system_prompt_append, has_observer_context = build_system_prompt(
                    agent, agent_id, workspace_root, teams, agents
                )
                if reset and has_observer_context:
                    outbound = f"{RESET_NOTICE}\n\n{message}"
                timeout_seconds = self.settings.agent_timeout_ms / 1000

            config = AdapterConfig(
                agent_id=agent_id,
                working_directory=str(working_dir),
                model=agent.model,
                reset=reset,
                system_prompt_append=system_prompt_append,
                timeout_seconds=timeout_seconds,
            )

            start_time = time.monotonic()
            try:
                result = await adapter.run(outbound, config)
            except Exception as e:
                logger.warning(
                    "invoke.failed",
                    adapter=adapter.name,
                    error=str(e),
                    duration_seconds=round(time.monotonic() - start_time, 1),
                )
                raise

            result.duration_seconds = time.monotonic() - start_time
            logger.info(
                "invoke.completed",
                adapter=adapter.name,
                duration_seconds=round(result.duration_seconds, 1),
                response_chars=len(result.response),
                session_id=result.session_id,
            )

            if agent.observer_enabled:
                self._record(agent, agent_id, message, result, workspace_root)

            return result

    def _record(
        self,
        agent: AgentConfig,
        agent_id: str,
        message: str,
        result: InvocationResult,
        workspace_root: str | Path,
    ) -> None:
        """Fire-and-forget the exchange to the observer."""
        exchange = [{"role": "user", "content": message}]
        if result.structured:
            exchange += result.messages
        else:
            exchange.append({"role": "assistant", "content": result.response})

        schedule_record_exchange(
            agent_id,
            exchange,
            workspace_root,
            agent.provider.value,
            agent.observer_token_threshold,
            agent.observer_reflection_threshold,
            self.settings.observer_path,
            self.settings.observer_python,
        )
