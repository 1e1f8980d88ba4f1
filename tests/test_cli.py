"""Tests for the tinyclaw CLI (click CliRunner, no backends)."""

import json

import pytest
from click.testing import CliRunner

from conftest import FakeStreamClient
from tinyclaw.agent import invoker as invoker_module
from tinyclaw.cli import main as cli_module
from tinyclaw.config import settings
from tinyclaw.observer import state_dir

SETTINGS = {
    "agents": {
        "lead": {"name": "Lead"},
        "coder": {"name": "Coder", "provider": "openai"},
    },
    "teams": {
        "dev": {"name": "Dev Team", "agents": ["lead", "coder"], "leader_agent": "lead"},
    },
}


@pytest.fixture()
def configured(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(SETTINGS))
    monkeypatch.setattr(settings, "settings_file", str(path))
    monkeypatch.setattr(settings, "workspace_path", str(tmp_path / "ws"))
    monkeypatch.setattr(settings, "log_level", "ERROR")
    return tmp_path


def test_teams(configured):
    result = CliRunner().invoke(cli_module.main, ["teams"])
    assert result.exit_code == 0
    assert "Dev Team" in result.output
    assert "@lead" in result.output
    assert "(leader)" in result.output


def test_mentions_argument(configured):
    result = CliRunner().invoke(
        cli_module.main, ["mentions", "lead", "[@coder: write the parser]"]
    )
    assert result.exit_code == 0
    assert "-> @coder" in result.output
    assert "write the parser" in result.output


def test_mentions_stdin(configured):
    result = CliRunner().invoke(
        cli_module.main, ["mentions", "lead"], input="ping @Coder please"
    )
    assert result.exit_code == 0
    assert "-> @coder" in result.output


def test_mentions_none(configured):
    result = CliRunner().invoke(cli_module.main, ["mentions", "lead", "nothing here"])
    assert "No teammate mentions." in result.output


def test_observer_missing(configured):
    result = CliRunner().invoke(cli_module.main, ["observer", "lead"])
    assert result.exit_code == 0
    assert "No observer state for lead." in result.output


def test_observer_formatted_and_raw(configured):
    directory = state_dir("lead", configured / "ws")
    directory.mkdir(parents=True)
    (directory / "observer_state.json").write_text(
        json.dumps({"observations_text": "* HIGH User likes tea", "observation_count": 1})
    )

    result = CliRunner().invoke(cli_module.main, ["observer", "lead"])
    assert result.exit_code == 0
    assert "1 observations" in result.output
    assert "<observations>\n* HIGH User likes tea\n</observations>" in result.output

    raw = CliRunner().invoke(cli_module.main, ["observer", "lead", "--raw"])
    assert '"observation_count": 1' in raw.output


def test_invoke_unknown_agent(configured):
    result = CliRunner().invoke(cli_module.main, ["invoke", "ghost", "hi"])
    assert result.exit_code == 1
    assert "agent 'ghost' not found" in result.output


def test_invoke_native_with_route(configured, monkeypatch):
    stream = [
        {"type": "system", "session_id": "S9"},
        {"type": "result", "result": "Plan ready. [@coder: build step one]",
         "session_id": "S9"},
    ]
    real_init = invoker_module.AgentInvoker.__init__

    def init_with_fake(self, settings=None, stream_client=None):
        real_init(self, settings, stream_client=FakeStreamClient(stream))

    monkeypatch.setattr(invoker_module.AgentInvoker, "__init__", init_with_fake)

    result = CliRunner().invoke(cli_module.main, ["invoke", "lead", "plan it", "--route"])

    assert result.exit_code == 0, result.output
    assert "Plan ready." in result.output
    assert "session: S9" in result.output
    assert "-> @coder" in result.output


def test_adapters_lists_every_provider(configured, monkeypatch):
    monkeypatch.setattr("shutil.which", lambda name: None)

    result = CliRunner().invoke(cli_module.main, ["adapters"])

    assert result.exit_code == 0
    for provider in ("anthropic", "openai", "opencode"):
        assert provider in result.output
    assert "not ready" in result.output
