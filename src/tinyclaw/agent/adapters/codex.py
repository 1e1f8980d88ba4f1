"""Codex adapter — spawns OpenAI Codex CLI in one-shot exec mode.

Learn: `codex exec --json` prints one JSON event per line. The answer
is the text of the LAST `item.completed` event whose item is an
`agent_message`; everything else (reasoning, tool calls, usage) is
ignored. `exec resume --last` picks the previous session back up.
"""

import shutil

import structlog

from tinyclaw.agent.adapters.base import (
    AdapterConfig,
    AgentAdapter,
    InvocationResult,
    iter_ndjson,
    run_command,
)
from tinyclaw.config import Provider

logger = structlog.get_logger()

FALLBACK_RESPONSE = "Sorry, I could not generate a response from Codex."


def parse_codex_output(output: str) -> str:
    """Text of the last completed agent_message event, or "" if none."""
    response = ""
    for event in iter_ndjson(output):
        item = event.get("item")
        if (
            event.get("type") == "item.completed"
            and isinstance(item, dict)
            and item.get("type") == "agent_message"
        ):
            response = item.get("text") or ""
    return response


class CodexAdapter(AgentAdapter):
    """Adapter for OpenAI Codex CLI."""

    provider = Provider.OPENAI

    @property
    def name(self) -> str:
        return "codex"

    def validate_environment(self) -> tuple[bool, str]:
        """Check that the `codex` binary is available."""
        if shutil.which("codex"):
            return True, "Codex CLI found"
        return (
            False,
            "Codex CLI not found on PATH. "
            "Install with: npm install -g @openai/codex",
        )

    def build_command(self, message: str, config: AdapterConfig) -> list[str]:
        cmd = ["codex", "exec"]
        if not config.reset:
            cmd += ["resume", "--last"]
        if config.model:
            cmd += ["--model", config.model]
        cmd += [
            "--skip-git-repo-check",
            "--dangerously-bypass-approvals-and-sandbox",
            "--json",
            message,
        ]
        return cmd

    async def run(self, message: str, config: AdapterConfig) -> InvocationResult:
        if config.reset:
            logger.info("codex.reset", agent_id=config.agent_id)

        output = await run_command(
            self.build_command(message, config),
            cwd=config.working_directory,
            env_overrides=config.env_overrides,
            timeout=config.timeout_seconds,
        )
        return InvocationResult(
            provider=self.provider,
            response=parse_codex_output(output) or FALLBACK_RESPONSE,
        )
