"""Inter-agent routing: mention extraction and team protocol instructions."""

from tinyclaw.routing.mentions import DirectedMention, extract_mentions, is_teammate
from tinyclaw.routing.team_context import build_instruction_block, find_team

__all__ = [
    "DirectedMention",
    "build_instruction_block",
    "extract_mentions",
    "find_team",
    "is_teammate",
]
