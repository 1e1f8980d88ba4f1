"""Shared fixtures: agent/team tables, a fake event stream, isolated settings.

Learn: Nothing here touches a real backend. The native streaming path
is driven by FakeStreamClient (same interface as ClaudeCliStreamClient),
subprocess adapters are tested by monkeypatching run_command, and every
file the code reads or writes lives under pytest's tmp_path.
"""

import asyncio

import pytest
import structlog

from tinyclaw.config import AgentConfig, Settings, TeamConfig


class FakeStreamClient:
    """Replays a fixed list of events, optionally slowly."""

    def __init__(self, events: list[dict], delay: float = 0.0):
        self.events = events
        self.delay = delay
        self.calls: list[tuple] = []
        self.closed = False

    async def stream(self, prompt, options):
        self.calls.append((prompt, options))
        try:
            for event in self.events:
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield event
        finally:
            self.closed = True


@pytest.fixture(autouse=True)
def _reset_structlog():
    """The CLI configures structlog globally; undo it after every test."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def agents():
    return {
        "agent-a": AgentConfig(name="Alice", model="claude-sonnet-4-20250514"),
        "agent-b": AgentConfig(name="Bob", model="claude-sonnet-4-20250514"),
        "agent-c": AgentConfig(name="Charlie", model="claude-sonnet-4-20250514"),
    }


@pytest.fixture()
def teams():
    return {
        "test-team": TeamConfig(
            name="Test Team",
            agents=["agent-a", "agent-b", "agent-c"],
            leader_agent="agent-a",
        ),
    }


@pytest.fixture()
def test_settings(tmp_path):
    return Settings(
        workspace_path=str(tmp_path / "workspace"),
        settings_file=str(tmp_path / "settings.json"),
        agent_timeout_ms=120_000,
        observer_path="",
    )
