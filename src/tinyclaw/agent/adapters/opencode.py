"""OpenCode adapter — spawns the OpenCode CLI in run mode.

Learn: `opencode run --format json` streams NDJSON events. Text arrives
in `{"type": "text", "part": {"text": ...}}` events; a later text event
supersedes an earlier one, so the last one is the answer.
`--continue` resumes the previous session.
"""

import shutil

from tinyclaw.agent.adapters.base import (
    AdapterConfig,
    AgentAdapter,
    InvocationResult,
    iter_ndjson,
    run_command,
)
from tinyclaw.config import Provider

FALLBACK_RESPONSE = "Sorry, I could not generate a response from OpenCode."


def parse_opencode_output(output: str) -> str:
    """Text of the last `text` event, or "" if none."""
    response = ""
    for event in iter_ndjson(output):
        part = event.get("part")
        if event.get("type") == "text" and isinstance(part, dict):
            response = part.get("text") or ""
    return response


class OpenCodeAdapter(AgentAdapter):
    """Adapter for the OpenCode CLI."""

    provider = Provider.OPENCODE

    @property
    def name(self) -> str:
        return "opencode"

    def validate_environment(self) -> tuple[bool, str]:
        if shutil.which("opencode"):
            return True, "OpenCode CLI found"
        return (
            False,
            "OpenCode CLI not found on PATH. "
            "Install with: npm install -g opencode-ai",
        )

    def build_command(self, message: str, config: AdapterConfig) -> list[str]:
        cmd = ["opencode", "run", "--format", "json"]
        if config.model:
            cmd += ["--model", config.model]
        if not config.reset:
            cmd.append("--continue")
        cmd.append(message)
        return cmd

    async def run(self, message: str, config: AdapterConfig) -> InvocationResult:
        output = await run_command(
            self.build_command(message, config),
            cwd=config.working_directory,
            env_overrides=config.env_overrides,
            timeout=config.timeout_seconds,
        )
        return InvocationResult(
            provider=self.provider,
            response=parse_opencode_output(output) or FALLBACK_RESPONSE,
        )
