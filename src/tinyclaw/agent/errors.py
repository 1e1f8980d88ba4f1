"""Invocation errors.

Learn: Everything the invoker surfaces to its caller is an
InvocationError, so callers can catch one type and still tell the
cases apart:

- InvocationError: backend could not start, or exited non-zero
- AgentTimeoutError: native stream cancelled after the timeout
- StreamError: native stream ended with an error result event

None of these are retried here; retry policy belongs to the caller.
"""


class InvocationError(Exception):
    """A backend invocation failed."""


class AgentTimeoutError(InvocationError):
    """The backend did not finish within the configured timeout."""

    def __init__(self, agent_id: str, timeout_ms: int):
        self.agent_id = agent_id
        self.timeout_ms = timeout_ms
        super().__init__(f"Agent {agent_id} timed out after {timeout_ms}ms")


class StreamError(InvocationError):
    """The native event stream reported an error result."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(", ".join(errors) or "Unknown stream error")


class UnknownProviderError(ValueError):
    """The agent's provider tag is not one of the supported backends."""
