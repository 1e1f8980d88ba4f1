"""Application configuration via environment variables + team settings file.

Uses pydantic-settings to load runtime config from env vars with the
TINYCLAW_ prefix. Agent and team tables live in a JSON settings file
that is owned (and written) by the settings UI; this module only reads it.

Learn: Two layers on purpose —
1. Settings: process-wide knobs (paths, timeouts, logging)
2. TeamSettings: the agent/team tables that change while we run,
   so they are re-read per invocation rather than cached
"""

import json
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

DEFAULT_TOKEN_THRESHOLD = 50_000
DEFAULT_REFLECTION_THRESHOLD = 40_000


class ConfigError(Exception):
    """The team settings file exists but cannot be used."""


class Provider(str, Enum):
    """Backend engine an agent is dispatched to.

    Learn: A closed set. Unknown tags fail validation when the settings
    file is loaded instead of silently falling through to Claude.
    """

    ANTHROPIC = "anthropic"  # native streaming (Claude)
    OPENAI = "openai"  # codex exec subprocess
    OPENCODE = "opencode"  # opencode run subprocess


class AgentConfig(BaseModel):
    """One agent's configuration, immutable for the span of an invocation."""

    name: str
    provider: Provider = Provider.ANTHROPIC
    model: str = ""
    working_directory: Optional[str] = None
    observer_enabled: bool = False
    observer_token_threshold: int = Field(default=DEFAULT_TOKEN_THRESHOLD, gt=0)
    observer_reflection_threshold: int = Field(
        default=DEFAULT_REFLECTION_THRESHOLD, gt=0
    )

    model_config = {"frozen": True, "extra": "ignore"}


class TeamConfig(BaseModel):
    """A team: ordered member ids and a designated leader."""

    name: str
    agents: list[str] = Field(default_factory=list)
    leader_agent: str = ""

    model_config = {"frozen": True, "extra": "ignore"}


class TeamSettings(BaseModel):
    """The agent and team tables from the settings file."""

    agents: dict[str, AgentConfig] = Field(default_factory=dict)
    teams: dict[str, TeamConfig] = Field(default_factory=dict)

    model_config = {"extra": "ignore"}


class Settings(BaseSettings):
    """Runtime configuration. Set via TINYCLAW_* env vars."""

    # Where per-agent directories live (workspace_path/<agent_id>)
    workspace_path: str = str(Path.home() / "tinyclaw-workspace")

    # Agent/team tables (JSON)
    settings_file: str = str(Path.home() / ".tinyclaw" / "settings.json")

    # Native streaming invocation timeout
    agent_timeout_ms: int = 120_000

    # Observer summarizer checkout; empty disables exchange recording
    observer_path: str = ""
    observer_python: str = "python3"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "TINYCLAW_"}


def load_team_settings(path: str | Path) -> TeamSettings:
    """Read the agent/team tables from the JSON settings file.

    A missing file means "no agents configured yet" and yields empty
    tables. Anything else that goes wrong raises ConfigError.
    """
    path = Path(path).expanduser()
    if not path.exists():
        return TeamSettings()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e

    try:
        return TeamSettings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings file {path}: {e}") from e


# Singleton, import this everywhere
settings = Settings()
