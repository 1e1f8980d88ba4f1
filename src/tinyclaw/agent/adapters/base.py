"""Agent adapter base — one interface over three backend wire protocols.

Learn: TinyClaw doesn't run models itself. Each invocation is dispatched
to an existing agent backend:

- codex (provider "openai"): `codex exec --json`, NDJSON on stdout
- opencode (provider "opencode"): `opencode run --format json`, NDJSON on stdout
- claude (provider "anthropic"): an async event stream consumed in-process

Each adapter knows how to:
1. Build its backend's command / stream options
2. Ask for conversation continuation (or a fresh start on reset)
3. Pick the final answer out of its wire format
4. Normalize everything into an InvocationResult

The subprocess pattern is asyncio.create_subprocess_exec + communicate,
shared by all subprocess adapters through run_command().
"""

import asyncio
import json
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator, Optional

import structlog

from tinyclaw.agent.errors import InvocationError
from tinyclaw.config import Provider

logger = structlog.get_logger()


@dataclass
class AdapterConfig:
    """Everything an adapter needs for one run.

    Learn: Value object assembled by the invoker. Adapters never look at
    settings or team tables themselves.
    """

    agent_id: str
    working_directory: str

    # Backend model id ("" = backend default)
    model: str = ""

    # True = start a fresh conversation, False = continue the last one
    reset: bool = False

    # Extra system prompt (native streaming only)
    system_prompt_append: str = ""

    # None = wait as long as the backend runs
    timeout_seconds: Optional[float] = None

    # Extra env vars for the subprocess
    env_overrides: dict[str, str] = field(default_factory=dict)


@dataclass
class InvocationResult:
    """Normalized result of one invocation.

    Learn: Subprocess backends only give us a final text, so `messages`
    is empty and `session_id` is None for them. The native stream also
    yields the ordered transcript and the backend session id; `structured`
    tells the two shapes apart without the caller having to remember
    which provider it used.
    """

    provider: Provider
    response: str
    messages: list[dict] = field(default_factory=list)
    session_id: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def structured(self) -> bool:
        return self.provider is Provider.ANTHROPIC


class AgentAdapter(ABC):
    """Abstract base for backend adapters."""

    provider: Provider

    @property
    @abstractmethod
    def name(self) -> str:
        """Adapter identifier, e.g. 'claude', 'codex', 'opencode'."""

    @abstractmethod
    async def run(self, message: str, config: AdapterConfig) -> InvocationResult:
        """Send one message to the backend and return its normalized answer.

        Raises InvocationError (or a subclass) on failure.
        """

    def validate_environment(self) -> tuple[bool, str]:
        """Check if this adapter's backend is installed.

        Returns (is_valid, message). Override to check for
        specific binaries on PATH.
        """
        return True, "ok"


def iter_ndjson(output: str) -> Iterator[dict]:
    """Yield each JSON object line of NDJSON output.

    Blank, unparsable and non-object lines are skipped individually.
    """
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(event, dict):
            yield event


async def run_command(
    cmd: list[str],
    cwd: str,
    env_overrides: Optional[dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> str:
    """Run a backend command and return its stdout.

    Raises InvocationError when the command cannot be started or exits
    non-zero (message = trimmed stderr, or "Command exited with code N").
    """
    env = {**os.environ, **(env_overrides or {})}

    start_time = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except OSError as e:
        raise InvocationError(f"Failed to start {cmd[0]}: {e}") from e

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            proc.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()  # ensure process is reaped
        raise InvocationError(f"{cmd[0]} timed out after {timeout:.0f}s")

    stdout = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
    stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""

    logger.debug(
        "adapter.command_finished",
        command=cmd[0],
        exit_code=proc.returncode,
        duration_seconds=round(time.monotonic() - start_time, 1),
    )

    if proc.returncode != 0:
        raise InvocationError(
            stderr.strip() or f"Command exited with code {proc.returncode}"
        )
    return stdout
