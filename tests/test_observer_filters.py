"""Tests for the pure observer text rules."""

import json

import pytest

from tinyclaw.observer import (
    filter_stale_team_references,
    normalize_messages,
    strip_routing_artifacts,
)
from tinyclaw.observer.filters import TOOL_INPUT_LIMIT, TOOL_RESULT_LIMIT

OBSERVATIONS = "\n".join(
    [
        "* HIGH (10:00) User prefers Python",
        "* HIGH (10:01) Your team includes @coder and @reviewer",
        "* MEDIUM (10:02) You are in team dev with @coder",
        "* MEDIUM (10:03) Team dev comprises 3 agents",
        "* LOW (10:04) Team alpha with coder, reviewer agents",
        "* MEDIUM (10:05) User asked about teamwork best practices",
        "* MEDIUM (10:06) Discussed the team feature request for dashboards",
        "* LOW (10:07) The team discussed the deploy schedule",
        "* LOW (10:08) Your team are doing great work on the API",
        "* LOW (10:09) The team members are discussing the release plan",
        "* LOW (10:10) User said you're in the team channel for alerts",
        "* LOW (10:11) The QA team has asked the agents to rerun the suite",
        "",
    ]
)


# ═══════════════════════════════════════════════════════════
# Stale team references
# ═══════════════════════════════════════════════════════════


def test_filter_removes_structural_lines():
    filtered = filter_stale_team_references(OBSERVATIONS)

    assert "User prefers Python" in filtered
    assert "Your team includes" not in filtered
    assert "You are in team dev" not in filtered
    assert "comprises 3 agents" not in filtered
    assert "Team alpha with" not in filtered


def test_filter_keeps_non_structural_team_prose():
    filtered = filter_stale_team_references(OBSERVATIONS)

    assert "* MEDIUM (10:05) User asked about teamwork best practices\n" in filtered
    assert "* MEDIUM (10:06) Discussed the team feature request for dashboards\n" in filtered
    assert "* LOW (10:07) The team discussed the deploy schedule\n" in filtered
    assert "* LOW (10:08) Your team are doing great work on the API\n" in filtered
    assert "* LOW (10:09) The team members are discussing the release plan\n" in filtered
    assert "* LOW (10:10) User said you're in the team channel for alerts\n" in filtered
    assert "* LOW (10:11) The QA team has asked the agents to rerun the suite\n" in filtered


@pytest.mark.parametrize(
    "line",
    [
        "Your teammates are @a and @b",
        "Team members: @a, @b",
        "you're on the dev team now",
        "@coder is a member of team dev",
        "The dev team has 4 agents",
        "Team Alpha consists of two agents",
    ],
)
def test_filter_removes_variants(line):
    assert filter_stale_team_references(f"keep\n{line}\nkeep too") == "keep\nkeep too"


def test_filter_idempotent():
    once = filter_stale_team_references(OBSERVATIONS)
    assert filter_stale_team_references(once) == once


def test_filter_leaves_unrelated_text_untouched():
    text = "line one\n\n  indented line\r\nlast line without newline"
    assert filter_stale_team_references(text) == text


def test_filter_empty():
    assert filter_stale_team_references("") == ""


# ═══════════════════════════════════════════════════════════
# Routing artifacts
# ═══════════════════════════════════════════════════════════


def test_strip_teammate_header():
    text = "[Message from teammate @agent-a]:\nPlease review the schema."
    assert strip_routing_artifacts(text) == "Please review the schema."


def test_strip_pending_trailer():
    text = (
        "Here are my results.\n\n------\n\n"
        "[2 other teammate response(s) are still being processed and will be "
        "delivered when ready. Do not re-mention teammates who haven't responded yet.]"
    )
    assert strip_routing_artifacts(text) == "Here are my results."


def test_strip_leaves_plain_text():
    assert strip_routing_artifacts("  nothing to strip  ") == "nothing to strip"


# ═══════════════════════════════════════════════════════════
# Message normalization
# ═══════════════════════════════════════════════════════════


def test_normalize_blocks():
    raw = [
        {
            "role": "assistant",
            "content": [
                {"type": "text", "text": "Let me read that."},
                {"type": "tool_use", "id": "tu_1", "name": "Read",
                 "input": {"file_path": "/workspace/README.md"}},
            ],
        },
        {
            "role": "user",
            "content": [
                {"type": "tool_result", "tool_use_id": "tu_1",
                 "content": "# My Project\nA CLI tool."},
            ],
        },
        {"role": "assistant", "content": "Plain string content."},
    ]
    normalized = normalize_messages(raw)

    assert len(normalized) == 3
    assert normalized[0]["role"] == "assistant"
    assert normalized[0]["content"].startswith("Let me read that.\n[Tool: Read] Input: ")
    assert "file_path" in normalized[0]["content"]
    assert normalized[1]["content"] == "[Tool Result] # My Project\nA CLI tool."
    assert normalized[2] == {"role": "assistant", "content": "Plain string content."}


def test_normalize_truncates_tool_payloads():
    big_input = {"data": "x" * 2000}
    big_result = [{"type": "text", "text": "y" * 5000}]
    normalized = normalize_messages(
        [
            {"role": "assistant", "content": [
                {"type": "tool_use", "name": "Write", "input": big_input}]},
            {"role": "user", "content": [
                {"type": "tool_result", "content": big_result}]},
        ]
    )

    tool_use = normalized[0]["content"]
    assert tool_use == "[Tool: Write] Input: " + json.dumps(big_input)[:TOOL_INPUT_LIMIT]

    tool_result = normalized[1]["content"]
    assert tool_result == "[Tool Result] " + json.dumps(big_result)[:TOOL_RESULT_LIMIT]


def test_normalize_strips_artifacts_and_drops_empty():
    normalized = normalize_messages(
        [
            {"role": "user", "content": "[Message from teammate @agent-b]:\nDone with the API."},
            {"role": "user", "content": "[1 other teammate response(s) are still being processed.]"},
            {"role": "assistant", "content": []},
        ]
    )
    assert normalized == [{"role": "user", "content": "Done with the API."}]
