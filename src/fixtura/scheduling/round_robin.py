"""
Round-robin fixture generation (circle method).

With n teams (n even, a bye is added for odd counts) the schedule has
n-1 rounds of n/2 matches. Each round pairs position i with position
n-1-i; between rounds position 0 stays fixed while the rest rotate one
place clockwise:

    round 1:  A B C D   ->  A-D, B-C
    round 2:  A D B C   ->  A-C, D-B
    round 3:  A C D B   ->  A-B, C-D

Unlike a naive double loop over all pairs, every team plays at most once
per round, so a round maps directly onto a match date.

Output depends entirely on the order of ``team_ids``; callers pass teams
in a stable, documented order (see SqlAlchemyStore.list_teams).
"""

from __future__ import annotations

from typing import Hashable, Sequence, TypeVar

from fixtura.exceptions import ConfigurationError

TeamId = TypeVar("TeamId", bound=Hashable)


class _Bye:
    """Sentinel opponent used to even out an odd team count."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "BYE"


BYE = _Bye()


def rotate(positions: list) -> list:
    """
    One circle-method rotation: index 0 fixed, last element moves to
    index 1, everything else shifts right by one.

    Examples:
        >>> rotate(["A", "B", "C", "D"])
        ['A', 'D', 'B', 'C']
    """
    if len(positions) <= 2:
        return list(positions)
    return [positions[0], positions[-1], *positions[1:-1]]


def generate_round_robin(
    team_ids: Sequence[TeamId],
    home_away: bool = False,
) -> list[list[tuple[TeamId, TeamId]]]:
    """
    Generate a single or double round-robin schedule.

    Args:
        team_ids: Teams in fixture-generation order
        home_away: If True, append a second half where every pairing is
                   mirrored (round r -> round r + total_rounds)

    Returns:
        List of rounds; round k (1-based) is element k-1. Each round is a
        list of (home, away) pairs. Fewer than two teams yields no rounds.

    Examples:
        >>> generate_round_robin(["A", "B"])
        [[('A', 'B')]]
        >>> len(generate_round_robin(["A", "B", "C"]))
        3
    """
    if len(set(team_ids)) != len(team_ids):
        raise ConfigurationError("Round-robin team list contains duplicates")
    if len(team_ids) < 2:
        return []

    positions = list(team_ids)
    if len(positions) % 2 == 1:
        positions.append(BYE)

    n = len(positions)
    total_rounds = n - 1
    matches_per_round = n // 2

    first_half: list[list[tuple[TeamId, TeamId]]] = []
    for _ in range(total_rounds):
        pairs = []
        for i in range(matches_per_round):
            home = positions[i]
            away = positions[n - 1 - i]
            if home is BYE or away is BYE:
                continue
            pairs.append((home, away))
        first_half.append(pairs)
        positions = rotate(positions)

    if not home_away:
        return first_half

    second_half = [[(away, home) for home, away in pairs] for pairs in first_half]
    return first_half + second_half


def generate_round_robin_cycles(
    team_ids: Sequence[TeamId],
    home_away: bool = False,
    cycles: int = 1,
) -> list[list[tuple[TeamId, TeamId]]]:
    """
    Repeat the round-robin schedule ``cycles`` times.

    Rounds are numbered contiguously: cycle 2 starts right after the last
    round of cycle 1.
    """
    if cycles < 1:
        raise ConfigurationError(f"Round-robin cycles must be >= 1, got {cycles}")

    rounds: list[list[tuple[TeamId, TeamId]]] = []
    for _ in range(cycles):
        rounds.extend(generate_round_robin(team_ids, home_away))
    return rounds


def count_round_robin_matches(team_count: int, home_away: bool = False) -> int:
    """Expected number of matches: n*(n-1)/2, doubled for home/away."""
    if team_count < 2:
        return 0
    single = team_count * (team_count - 1) // 2
    return single * 2 if home_away else single


def count_round_robin_rounds(team_count: int, home_away: bool = False) -> int:
    """Expected number of rounds: n-1 for even n, n for odd n (bye slot)."""
    if team_count < 2:
        return 0
    rounds = team_count - 1 if team_count % 2 == 0 else team_count
    return rounds * 2 if home_away else rounds
