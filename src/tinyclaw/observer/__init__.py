"""Observer memory: persisted digest in, exchange logs out."""

from tinyclaw.observer.bridge import record_exchange, schedule_record_exchange
from tinyclaw.observer.filters import (
    filter_stale_team_references,
    normalize_messages,
    strip_routing_artifacts,
)
from tinyclaw.observer.state import ObserverState, format_context, load_state, state_dir

__all__ = [
    "ObserverState",
    "filter_stale_team_references",
    "format_context",
    "load_state",
    "normalize_messages",
    "record_exchange",
    "schedule_record_exchange",
    "state_dir",
    "strip_routing_artifacts",
]
