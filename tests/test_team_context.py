"""Tests for the team communication instruction block."""

from tinyclaw.config import TeamConfig
from tinyclaw.routing import build_instruction_block, find_team


def test_find_team(teams):
    found = find_team("agent-b", teams)
    assert found is not None
    team_id, team = found
    assert team_id == "test-team"
    assert team.leader_agent == "agent-a"


def test_find_team_missing(teams):
    assert find_team("nobody", teams) is None


def test_find_team_first_match_wins():
    teams = {
        "first": TeamConfig(name="First", agents=["x", "y"]),
        "second": TeamConfig(name="Second", agents=["y", "z"]),
    }
    assert find_team("y", teams)[0] == "first"


def test_instruction_block_contents(teams):
    block = build_instruction_block("agent-a", "test-team", teams["test-team"])

    assert block is not None
    assert "@agent-a" in block
    assert "Test Team" in block
    assert "@agent-b, @agent-c" in block
    assert "[@teammate_id: your message]" in block
    assert "ONLY way" in block
    assert "Do not use any" in block
    # Worked example uses the first teammate
    assert "[@agent-b: " in block
    assert "[@agent-c: " not in block


def test_instruction_block_shows_display_names(teams, agents):
    block = build_instruction_block("agent-b", "test-team", teams["test-team"], agents)

    assert "@agent-a (Alice)" in block
    assert "@agent-c (Charlie)" in block
    assert "[@agent-a: " in block


def test_instruction_block_solo_team():
    team = TeamConfig(name="Solo", agents=["only"], leader_agent="only")
    assert build_instruction_block("only", "solo", team) is None
