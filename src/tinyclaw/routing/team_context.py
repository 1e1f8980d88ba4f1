"""Team routing context — teach an agent the bracket-tag protocol.

Learn: The instruction block is appended to the agent's system prompt
on every native-streaming invocation. It is rebuilt each time from the
current team table, so roster changes take effect on the next turn
without touching any on-disk template.
"""

from typing import Optional

from tinyclaw.config import AgentConfig, TeamConfig


def find_team(
    agent_id: str, teams: dict[str, TeamConfig]
) -> Optional[tuple[str, TeamConfig]]:
    """First team (in table order) that lists agent_id as a member.

    Teams are expected not to overlap; if they do, the first one wins.
    """
    for team_id, team in teams.items():
        if agent_id in team.agents:
            return team_id, team
    return None


def build_instruction_block(
    agent_id: str,
    team_id: str,
    team: TeamConfig,
    agents: Optional[dict[str, AgentConfig]] = None,
) -> Optional[str]:
    """Build the team communication instructions, or None for a solo team.

    When the agent table is given, display names are shown next to ids.
    """
    teammates = [tid for tid in team.agents if tid != agent_id]
    if not teammates:
        return None

    agents = agents or {}
    roster = ", ".join(
        f"@{tid} ({agents[tid].name})" if tid in agents else f"@{tid}"
        for tid in teammates
    )
    example = teammates[0]

    return f"""## Team Communication

You are @{agent_id}, a member of team "{team.name}" (@{team_id}).
Your teammates: {roster}

To message a teammate, put a bracket tag in your response:
[@teammate_id: your message]

To message several teammates at once, separate ids with commas:
[@id1,id2: your message]

Bracket tags are the ONLY way to reach your teammates. Do not use any
other message-sending tool or mechanism to contact them; such messages
will never be delivered.

Example:
[@{example}: Can you review the changes I just made and report any issues?]"""
