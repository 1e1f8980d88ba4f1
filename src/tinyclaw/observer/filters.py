"""Pure text rules applied on the way into and out of observer memory.

Learn: These are deliberately simple regex/truncation rules, kept apart
from any I/O so each one can be tested on strings alone:

- filter_stale_team_references: outbound (memory -> prompt). Team
  rosters change; an old "your team includes @x" line would contradict
  the live team block, so structural claims are dropped.
- strip_routing_artifacts: inbound (exchange -> summarizer). Queue
  headers/trailers are transport, not conversation.
- normalize_messages: inbound. Flattens structured content blocks
  (text / tool_use / tool_result) into one string per message.
"""

import json
import re
from typing import Any

TOOL_INPUT_LIMIT = 500
TOOL_RESULT_LIMIT = 1000

# ─── Stale team references ─────────────────────────────────

_NAME = r"[@\"'\w-]+"

# What a roster claim lists: @ids, a head count ("3 agents"), or a
# comma/and list of names ending in "agents"
_ROSTER = (
    r"(?:@[\w.-]+"
    r"|(?:\d+|one|two|three|four|five|six|seven|eight|nine|ten|several)"
    r"\s+(?:[\w-]+\s+)?agents?\b"
    r"|[\w-]+(?:\s*,\s*(?:and\s+)?[\w-]+|\s+and\s+[\w-]+)+\s+agents?\b)"
)

# "the team channel" is a place, not a membership claim
_TEAM_PLACES = (
    r"(?:channel|chat|meeting|call|thread|standup|sync|room|space|workspace"
    r"|discussion|conversation|repo|repository|page|wiki|board|calendar)s?\b"
)

STALE_TEAM_PATTERNS = [
    # Rosters: "your team includes @a and @b", "team members: @a, @b"
    re.compile(
        r"\byour\s+(?:teammates\s+are|team\s+members\s+are|team\s+(?:includes?"
        rf"|consists\s+of|comprises|is\s+made\s+up\s+of))\s+(?:the\s+)?{_ROSTER}",
        re.IGNORECASE,
    ),
    re.compile(
        rf"\bteam\s+(?:members?|roster)\s*(?::|are\b|is\b|includes?\b)\s*{_ROSTER}",
        re.IGNORECASE,
    ),
    # Membership: "you are in team dev with @a", "you're on the dev team"
    re.compile(
        r"\byou(?:'re|\s+are)\s+(?:now\s+)?(?:in|on|part\s+of|a\s+member\s+of"
        r"|assigned\s+to)\s+(?:the\s+)?"
        rf"(?:team\s+(?!{_TEAM_PLACES}){_NAME}|{_NAME}\s+team\b(?!\s+{_TEAM_PLACES}))",
        re.IGNORECASE,
    ),
    re.compile(
        rf"{_NAME}\s+(?:is|are)\s+(?:a\s+)?members?\s+of\s+(?:the\s+)?team\b",
        re.IGNORECASE,
    ),
    # Composition: "Team dev comprises 3 agents", "team dev with coder, reviewer agents"
    re.compile(
        rf"\bteam\s+{_NAME}\s+(?:comprises|consists\s+of|is\s+composed\s+of"
        rf"|contains|includes|has|with)\s+{_ROSTER}",
        re.IGNORECASE,
    ),
    re.compile(
        rf"\b{_NAME}\s+team\s+(?:comprises|consists\s+of|is\s+composed\s+of"
        rf"|contains|includes|has)\s+{_ROSTER}",
        re.IGNORECASE,
    ),
]


def is_stale_team_reference(line: str) -> bool:
    return any(p.search(line) for p in STALE_TEAM_PATTERNS)


def filter_stale_team_references(text: str) -> str:
    """Drop lines asserting team roster, membership or composition.

    Only whole matching lines are removed; every other line is kept
    byte-for-byte, so applying the filter twice changes nothing.
    """
    if not text:
        return text
    kept = [
        line
        for line in text.splitlines(keepends=True)
        if not is_stale_team_reference(line)
    ]
    return "".join(kept)


# ─── Routing artifacts ─────────────────────────────────────

TEAMMATE_HEADER = re.compile(
    r"^[ \t]*\[Message from teammate @[\w.-]+\]:?[ \t]*\r?\n?", re.MULTILINE
)
PENDING_TRAILER = re.compile(
    r"(?:\s*-{3,}\s*)?\[\d+ other teammate responses?(?:\(s\))?[^\]]*\]\s*$"
)


def strip_routing_artifacts(text: str) -> str:
    """Remove queue transport decoration from a message body."""
    text = TEAMMATE_HEADER.sub("", text)
    text = PENDING_TRAILER.sub("", text)
    return text.strip()


# ─── Message normalization ─────────────────────────────────


def _render_block(block: Any) -> str | None:
    if not isinstance(block, dict):
        return str(block) if block else None

    kind = block.get("type")
    if kind == "text":
        return block.get("text") or None
    if kind == "tool_use":
        payload = json.dumps(block.get("input", {}), default=str)
        return f"[Tool: {block.get('name', 'unknown')}] Input: {payload[:TOOL_INPUT_LIMIT]}"
    if kind == "tool_result":
        content = block.get("content", "")
        if not isinstance(content, str):
            content = json.dumps(content, default=str)
        return f"[Tool Result] {content[:TOOL_RESULT_LIMIT]}"
    return None


def flatten_content(content: Any) -> str:
    """Flatten a message's content (string or list of blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [_render_block(b) for b in content]
        return "\n".join(p for p in parts if p)
    if content is None:
        return ""
    return json.dumps(content, default=str)


def normalize_messages(messages: list[dict]) -> list[dict[str, str]]:
    """Normalize an exchange log into [{role, content: str}] for the summarizer.

    Entries that are empty once flattened and cleaned are dropped.
    """
    normalized = []
    for msg in messages:
        content = strip_routing_artifacts(flatten_content(msg.get("content")))
        if content:
            normalized.append({"role": str(msg.get("role", "user")), "content": content})
    return normalized
