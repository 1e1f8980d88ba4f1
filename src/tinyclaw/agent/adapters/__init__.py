"""Agent adapter registry — one adapter per backend provider.

Learn: Providers are a closed set (config.Provider). The registry maps
each one to its adapter class; there is no fallback, so a provider tag
we don't know fails loudly instead of quietly running on Claude.

    adapter = get_adapter("openai")
    result = await adapter.run(message, config)
"""

from typing import Optional

from tinyclaw.agent.adapters.base import (
    AdapterConfig,
    AgentAdapter,
    InvocationResult,
)
from tinyclaw.agent.adapters.claude import ClaudeAdapter, EventStreamClient
from tinyclaw.agent.adapters.codex import CodexAdapter
from tinyclaw.agent.adapters.opencode import OpenCodeAdapter
from tinyclaw.agent.errors import UnknownProviderError
from tinyclaw.config import Provider

__all__ = [
    "AdapterConfig",
    "AgentAdapter",
    "InvocationResult",
    "get_adapter",
    "list_adapters",
    "resolve_provider",
]

# ─── Registry ──────────────────────────────────────────────

_ADAPTERS: dict[Provider, type[AgentAdapter]] = {
    Provider.ANTHROPIC: ClaudeAdapter,
    Provider.OPENAI: CodexAdapter,
    Provider.OPENCODE: OpenCodeAdapter,
}


def resolve_provider(tag: str | Provider) -> Provider:
    """Map a provider tag to the Provider enum.

    Raises UnknownProviderError for anything outside the closed set.
    """
    try:
        return Provider(tag)
    except ValueError:
        available = ", ".join(p.value for p in Provider)
        raise UnknownProviderError(
            f"Unknown provider '{tag}'. Available: {available}"
        ) from None


def get_adapter(
    provider: str | Provider, stream_client: Optional[EventStreamClient] = None
) -> AgentAdapter:
    """Get an adapter instance for a provider.

    stream_client is only used by the native-streaming (anthropic) adapter.
    """
    provider = resolve_provider(provider)
    if provider is Provider.ANTHROPIC:
        return ClaudeAdapter(client=stream_client)
    return _ADAPTERS[provider]()


def list_adapters() -> list[Provider]:
    """List registered providers."""
    return list(_ADAPTERS)
