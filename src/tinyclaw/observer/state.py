"""Observer state — load the persisted memory digest and format it for a prompt.

Learn: The external summarizer is the only writer of observer_state.json.
We read it at invocation time and turn it into an <observer-context>
block that gets appended to the agent's system prompt.

Layout (per agent):
    {workspace}/{agent_id}/.switchboard/{agent_id}/observer_state.json
    {workspace}/{agent_id}/.switchboard/{agent_id}/pending_*.json   (transient)

Missing or broken state is never fatal: it just means "no context".
"""

import json
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from tinyclaw.observer.filters import filter_stale_team_references

logger = structlog.get_logger()

STATE_DIRNAME = ".switchboard"
STATE_FILENAME = "observer_state.json"


class ObserverState(BaseModel):
    """Persisted observer digest for one agent.

    Every field has a typed default so a partial file still formats.
    """

    observations_text: str = ""
    total_tokens_observed: int = 0
    observation_count: int = 0
    reflection_count: int = 0
    last_observed_at: Optional[str] = None
    current_task: str = ""
    suggested_response: Optional[str] = None

    model_config = {"extra": "ignore"}

    @field_validator("*", mode="wrap")
    @classmethod
    def _default_on_bad_value(cls, value, handler, info: ValidationInfo):
        # A null or mistyped field falls back to its default; the rest of
        # the digest still loads
        default = cls.model_fields[info.field_name].default
        if value is None:
            return default
        try:
            return handler(value)
        except ValidationError:
            return default

    @property
    def has_observations(self) -> bool:
        return bool(self.observations_text.strip())


def state_dir(agent_id: str, workspace_root: str | Path) -> Path:
    """Per-agent observer directory (state file + transient exchange files)."""
    return Path(workspace_root) / agent_id / STATE_DIRNAME / agent_id


def state_path(agent_id: str, workspace_root: str | Path) -> Path:
    return state_dir(agent_id, workspace_root) / STATE_FILENAME


def load_state(agent_id: str, workspace_root: str | Path) -> Optional[ObserverState]:
    """Load an agent's observer state, or None if there is nothing usable.

    Never raises: a missing file is normal (agent not observed yet), a
    malformed one is logged at warning level and treated the same way.
    """
    path = state_path(agent_id, workspace_root)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("observer.state_missing", agent_id=agent_id, path=str(path))
        return None
    except OSError as e:
        logger.warning(
            "observer.state_unreadable", agent_id=agent_id, path=str(path), error=str(e)
        )
        return None

    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return ObserverState.model_validate(data)
    except (ValueError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        logger.warning(
            "observer.state_malformed", agent_id=agent_id, path=str(path), error=str(e)
        )
        return None


def format_context(state: ObserverState) -> str:
    """Render observer state as the <observer-context> prompt fragment.

    <current-task> and <suggested-response> only appear when set;
    <observations> always appears, even if empty.
    """
    observations = filter_stale_team_references(state.observations_text).strip()

    lines = ["<observer-context>"]
    if state.current_task:
        lines.append(f"<current-task>{state.current_task}</current-task>")
    if state.suggested_response:
        lines.append(
            f"<suggested-response>{state.suggested_response}</suggested-response>"
        )
    lines.append("<observations>")
    if observations:
        lines.append(observations)
    lines.append("</observations>")
    lines.append("</observer-context>")
    lines.append("")
    lines.append(
        "Reference specific details from these observations when they are relevant."
    )
    lines.append(
        "When observations conflict, prefer the MOST RECENT information."
    )
    return "\n".join(lines)
