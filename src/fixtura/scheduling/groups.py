"""
Group-stage fixture generation.

Teams are split into contiguous chunks of ``teams_per_group`` in the order
given (group 1 gets the first chunk, and so on); the last group may be
short. Every pair inside a group plays once in round 1, the team listed
first at home, and again with sides swapped in round 2 when home/away is
enabled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import combinations
from typing import Hashable, Sequence

from fixtura.exceptions import ConfigurationError

GROUP_MATCH_TYPE = "group"


@dataclass
class GroupFixtures:
    """Fixtures of one group."""
    group_number: int
    team_ids: list
    rounds: list[list[tuple]] = field(default_factory=list)

    @property
    def name(self) -> str:
        return f"Group {self.group_number}"

    @property
    def match_count(self) -> int:
        return sum(len(pairs) for pairs in self.rounds)


def partition_groups(team_ids: Sequence[Hashable], teams_per_group: int) -> list[list]:
    """
    Contiguous chunks of ``teams_per_group``.

    Examples:
        >>> partition_groups([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4], [5]]
    """
    if teams_per_group < 2:
        raise ConfigurationError(f"teams_per_group must be >= 2, got {teams_per_group}")
    return [
        list(team_ids[start:start + teams_per_group])
        for start in range(0, len(team_ids), teams_per_group)
    ]


def generate_groups(
    team_ids: Sequence[Hashable],
    groups_count: int,
    teams_per_group: int,
    home_away: bool = False,
) -> list[GroupFixtures]:
    """
    Partition teams into groups and schedule every pair within each group.

    The number of chunks follows from ``teams_per_group``; ``groups_count``
    only sets the minimum roster (two teams per requested group).

    Raises:
        ConfigurationError: if groups_count < 1, teams_per_group < 2, or
            there are fewer than groups_count * 2 teams
    """
    if groups_count < 1:
        raise ConfigurationError(f"groups_count must be >= 1, got {groups_count}")
    if teams_per_group < 2:
        raise ConfigurationError(f"teams_per_group must be >= 2, got {teams_per_group}")
    if len(team_ids) < groups_count * 2:
        raise ConfigurationError(
            f"Not enough teams for {groups_count} groups: "
            f"need at least {groups_count * 2}, got {len(team_ids)}"
        )

    groups = []
    for index, members in enumerate(partition_groups(team_ids, teams_per_group)):
        pairs = list(combinations(members, 2))
        rounds = [pairs]
        if home_away:
            rounds.append([(away, home) for home, away in pairs])
        groups.append(GroupFixtures(group_number=index + 1, team_ids=members, rounds=rounds))

    return groups
