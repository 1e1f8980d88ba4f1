"""Agent invocation: backend adapters and the invoker that drives them."""

from tinyclaw.agent.adapters import AdapterConfig, InvocationResult, get_adapter
from tinyclaw.agent.errors import (
    AgentTimeoutError,
    InvocationError,
    StreamError,
    UnknownProviderError,
)
from tinyclaw.agent.invoker import AgentInvoker

__all__ = [
    "AdapterConfig",
    "AgentInvoker",
    "AgentTimeoutError",
    "InvocationError",
    "InvocationResult",
    "StreamError",
    "UnknownProviderError",
    "get_adapter",
]
