"""
Pure fixture schedulers.

Nothing in this package touches the database: each scheduler takes an
ordered list of team ids and returns rounds of pairings (or bracket
fixtures). The phase engine persists them.
"""

from fixtura.scheduling.elimination import (
    BracketFixture,
    PendingWinnerOf,
    ResolvedTeam,
    SeedSlot,
    decide_tie_winner,
    generate_single_elimination,
    parse_slot,
    seed_bracket,
)
from fixtura.scheduling.groups import (
    GROUP_MATCH_TYPE,
    GroupFixtures,
    generate_groups,
    partition_groups,
)
from fixtura.scheduling.round_robin import (
    BYE,
    generate_round_robin,
    generate_round_robin_cycles,
)

__all__ = [
    "BYE",
    "GROUP_MATCH_TYPE",
    "BracketFixture",
    "GroupFixtures",
    "PendingWinnerOf",
    "ResolvedTeam",
    "SeedSlot",
    "decide_tie_winner",
    "generate_groups",
    "generate_round_robin",
    "generate_round_robin_cycles",
    "generate_single_elimination",
    "parse_slot",
    "partition_groups",
    "seed_bracket",
]
