"""Claude adapter — consumes Claude's event stream in-process.

Learn: Unlike codex/opencode we don't just wait for a final blob of
stdout. We iterate a typed event stream as it arrives:

    {"type": "system", "session_id": ...}
    {"type": "assistant", "message": {"role": "assistant", "content": [...]}}
    {"type": "user", "message": {"role": "user", "content": [...tool_result...]}}
    {"type": "result", "subtype": "success", "result": "...", "session_id": ...}

assistant/user events (minus replays of earlier turns) become the
transcript handed to the observer. The terminal result event carries
the answer, or the error list.

The stream itself comes from an injected EventStreamClient, so the
adapter can be driven by a fake in tests. ClaudeCliStreamClient is the
production implementation: it runs `claude -p --output-format
stream-json` and yields each NDJSON line as it is printed.
"""

import asyncio
import json
import shutil
import uuid
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol

import structlog

from tinyclaw.agent.adapters.base import AdapterConfig, AgentAdapter, InvocationResult
from tinyclaw.agent.errors import AgentTimeoutError, InvocationError, StreamError
from tinyclaw.config import Provider

logger = structlog.get_logger()

FALLBACK_RESPONSE = "Sorry, I could not generate a response from Claude."

# Stream lines can carry whole tool results
STREAM_LINE_LIMIT = 16 * 1024 * 1024


@dataclass
class StreamOptions:
    """Per-call options for the event stream."""

    cwd: str
    model: str = ""
    append_system_prompt: str = ""
    continue_conversation: bool = False
    session_id: Optional[str] = None
    persist_session: bool = True


class EventStreamClient(Protocol):
    """Anything that can turn (prompt, options) into an async stream of events."""

    def stream(self, prompt: str, options: StreamOptions) -> AsyncIterator[dict]:
        ...


class ClaudeCliStreamClient:
    """EventStreamClient backed by the Claude Code CLI in stream-json mode."""

    def build_command(self, prompt: str, options: StreamOptions) -> list[str]:
        cmd = [
            "claude",
            "--dangerously-skip-permissions",
            "--output-format",
            "stream-json",
            "--verbose",
        ]
        if options.model:
            cmd += ["--model", options.model]
        if options.append_system_prompt:
            cmd += ["--append-system-prompt", options.append_system_prompt]
        if options.continue_conversation:
            cmd.append("--continue")
        if options.session_id:
            cmd += ["--session-id", options.session_id]
        if not options.persist_session:
            cmd.append("--no-session-persistence")
        cmd += ["-p", prompt]
        return cmd

    async def stream(self, prompt: str, options: StreamOptions) -> AsyncIterator[dict]:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.build_command(prompt, options),
                cwd=options.cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LINE_LIMIT,
            )
        except OSError as e:
            raise InvocationError(f"Failed to start claude: {e}") from e

        # Drain stderr concurrently so a chatty backend can't block stdout
        stderr_task = asyncio.create_task(proc.stderr.read())
        try:
            async for raw in proc.stdout:
                line = raw.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(event, dict):
                    yield event

            await proc.wait()
            if proc.returncode != 0:
                stderr = (await stderr_task).decode("utf-8", errors="replace").strip()
                raise InvocationError(
                    stderr or f"Command exited with code {proc.returncode}"
                )
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            if not stderr_task.done():
                stderr_task.cancel()

    def validate_environment(self) -> tuple[bool, str]:
        if shutil.which("claude"):
            return True, "Claude Code CLI found"
        return (
            False,
            "Claude Code CLI not found on PATH. "
            "Install with: npm install -g @anthropic-ai/claude-code",
        )


@dataclass
class StreamOutcome:
    response: Optional[str]
    messages: list[dict]
    session_id: Optional[str]


async def consume_event_stream(events: AsyncIterator[dict]) -> StreamOutcome:
    """Fold an event stream into (final text, transcript, session id).

    Raises StreamError on an error result event.
    """
    messages: list[dict] = []
    session_id: Optional[str] = None
    response: Optional[str] = None

    try:
        async for event in events:
            if session_id is None and event.get("session_id"):
                session_id = event["session_id"]

            event_type = event.get("type")
            if event_type in ("assistant", "user"):
                if event.get("isReplay") or event.get("is_replay"):
                    continue
                message = event.get("message") or {}
                messages.append(
                    {
                        "role": message.get("role", event_type),
                        "content": message.get("content", ""),
                    }
                )
            elif event_type == "result":
                subtype = str(event.get("subtype") or "success")
                if subtype.startswith("error"):
                    errors = event.get("errors") or [
                        event.get("result") or f"Stream ended with {subtype}"
                    ]
                    raise StreamError([str(e) for e in errors])
                response = event.get("result") or ""
                if event.get("session_id"):
                    session_id = event["session_id"]
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()

    return StreamOutcome(response=response, messages=messages, session_id=session_id)


class ClaudeAdapter(AgentAdapter):
    """Adapter for Claude via its native event stream."""

    provider = Provider.ANTHROPIC

    def __init__(self, client: Optional[EventStreamClient] = None):
        self.client = client or ClaudeCliStreamClient()

    @property
    def name(self) -> str:
        return "claude"

    def validate_environment(self) -> tuple[bool, str]:
        validate = getattr(self.client, "validate_environment", None)
        if validate is None:
            return True, "custom stream client"
        return validate()

    def build_options(self, config: AdapterConfig) -> StreamOptions:
        """Stream options for this run.

        Reset starts a brand-new session id and turns persistence off so
        no stale session data is loaded; otherwise continue the last one.
        """
        options = StreamOptions(
            cwd=config.working_directory,
            model=config.model,
            append_system_prompt=config.system_prompt_append,
        )
        if config.reset:
            options.session_id = str(uuid.uuid4())
            options.persist_session = False
        else:
            options.continue_conversation = True
        return options

    async def run(self, message: str, config: AdapterConfig) -> InvocationResult:
        options = self.build_options(config)
        if config.reset:
            logger.info(
                "claude.reset", agent_id=config.agent_id, session_id=options.session_id
            )

        try:
            outcome = await asyncio.wait_for(
                consume_event_stream(self.client.stream(message, options)),
                timeout=config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            timeout_ms = int((config.timeout_seconds or 0) * 1000)
            logger.warning(
                "claude.timeout", agent_id=config.agent_id, timeout_ms=timeout_ms
            )
            raise AgentTimeoutError(config.agent_id, timeout_ms)

        return InvocationResult(
            provider=self.provider,
            response=outcome.response or FALLBACK_RESPONSE,
            messages=outcome.messages,
            session_id=outcome.session_id,
        )
