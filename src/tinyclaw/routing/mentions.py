"""Mention routing — turn an agent's response into directed teammate messages.

Learn: Agents address each other in plain text. Two syntaxes are understood:

1. Bracket tags: `[@agent-b: please review]` or `[@agent-b,agent-c: both of you]`
   Each tagged teammate gets the directed clause plus whatever the agent
   wrote outside the tags (shared context), so nothing is lost.
2. Bare mentions: `... I think @agent-b should handle this ...`
   Fallback only. Used when the response has no well-formed bracket tag
   at all, and every mentioned teammate receives the whole response.

Bracket syntax is exclusive: a single tag anywhere in the text switches
bare-mention scanning off, so a casual "cc @agent-c" next to a tag never
fans out a second message.

Pure text processing — no I/O, never raises.
"""

import re
from dataclasses import dataclass

from tinyclaw.config import AgentConfig, TeamConfig

# [@id: message] / [@id1,id2: message]: id list must be non-empty and
# the colon present, otherwise it is not a tag.
BRACKET_TAG = re.compile(
    r"\[@([\w.-]+(?:\s*,\s*@?[\w.-]+)*)\s*:\s*([^\]]*)\]"
)

# @token not glued to a preceding word character (skips e-mail addresses)
BARE_MENTION = re.compile(r"(?<![\w@])@([\w-]+)")


@dataclass(frozen=True)
class DirectedMention:
    """A message one agent addressed to a teammate."""

    teammate_id: str
    message: str
    source_agent_id: str


def is_teammate(
    candidate_id: str,
    self_id: str,
    team_id: str,
    teams: dict[str, TeamConfig],
    agents: dict[str, AgentConfig],
) -> bool:
    """True if candidate is a configured agent on the same team (not self)."""
    if candidate_id == self_id or candidate_id not in agents:
        return False
    team = teams.get(team_id)
    return team is not None and candidate_id in team.agents


def _shared_context(response: str) -> str:
    """Response text with every bracket tag cut out."""
    return BRACKET_TAG.sub("", response).strip()


def _compose(shared: str, directed: str) -> str:
    if not shared:
        return directed
    return f"{shared}\n\n------\n\nDirected to you:\n{directed}"


def _extract_bracket_mentions(
    matches: list[re.Match],
    response: str,
    self_id: str,
    team_id: str,
    teams: dict[str, TeamConfig],
    agents: dict[str, AgentConfig],
) -> list[DirectedMention]:
    # teammate_id -> directed clauses, insertion order = first appearance
    directed: dict[str, list[str]] = {}
    for match in matches:
        clause = match.group(2).strip()
        for raw_id in match.group(1).split(","):
            candidate = raw_id.strip().lstrip("@")
            if not is_teammate(candidate, self_id, team_id, teams, agents):
                continue
            clauses = directed.setdefault(candidate, [])
            if clause and clause not in clauses:
                clauses.append(clause)

    shared = _shared_context(response)
    return [
        DirectedMention(
            teammate_id=teammate_id,
            message=_compose(shared, "\n\n".join(clauses)),
            source_agent_id=self_id,
        )
        for teammate_id, clauses in directed.items()
    ]


def _resolve_handle(
    handle: str,
    self_id: str,
    team_id: str,
    teams: dict[str, TeamConfig],
    agents: dict[str, AgentConfig],
) -> str | None:
    """Resolve a bare @handle: exact id first, then display name (any case)."""
    if is_teammate(handle, self_id, team_id, teams, agents):
        return handle

    lowered = handle.lower()
    for agent_id, agent in agents.items():
        if agent.name.lower() == lowered and is_teammate(
            agent_id, self_id, team_id, teams, agents
        ):
            return agent_id
    return None


def _extract_bare_mentions(
    response: str,
    self_id: str,
    team_id: str,
    teams: dict[str, TeamConfig],
    agents: dict[str, AgentConfig],
) -> list[DirectedMention]:
    seen: list[str] = []
    for match in BARE_MENTION.finditer(response):
        resolved = _resolve_handle(match.group(1), self_id, team_id, teams, agents)
        if resolved and resolved not in seen:
            seen.append(resolved)

    # No per-teammate slicing in bare mode: everyone gets the full text.
    return [
        DirectedMention(teammate_id=tid, message=response, source_agent_id=self_id)
        for tid in seen
    ]


def extract_mentions(
    response: str,
    self_id: str,
    team_id: str,
    teams: dict[str, TeamConfig],
    agents: dict[str, AgentConfig],
) -> list[DirectedMention]:
    """Extract directed teammate messages from an agent response.

    Returns an empty list when nothing is addressed to a teammate.
    """
    if not response:
        return []

    matches = list(BRACKET_TAG.finditer(response))
    if matches:
        return _extract_bracket_mentions(
            matches, response, self_id, team_id, teams, agents
        )
    return _extract_bare_mentions(response, self_id, team_id, teams, agents)
