"""
Single-elimination bracket generation and bracket math.

Bracket positions are 1-indexed within each round and follow standard
single-elimination progression:

    Round N, position p  ->  Round N+1, position ceil(p/2)

So positions 1 and 2 of round 1 feed position 1 of round 2 (the winner
of the odd position plays at home), positions 3 and 4 feed position 2,
and so on.

Participants of a bracket match are slots rather than teams:

- SeedSlot(seed): round 1, filled from the seeded team list
- PendingWinnerOf(round, position): the winner of a feeder tie
- ResolvedTeam(team_id): known team

Slots serialize to 'seed:3', 'winner:1:2' and 'team:17' so they can be
stored next to the match (home_source/away_source) and resolved when the
feeder tie finishes.

These functions are used by:
- The phase engine (generating and seeding the bracket)
- Result recording (propagating tie winners to the next round)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Union

from fixtura.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

RETURN_LEG_SUFFIX = "_return"


# =============================================================================
# Slots
# =============================================================================

@dataclass(frozen=True)
class SeedSlot:
    seed: int

    @property
    def source(self) -> str:
        return f"seed:{self.seed}"


@dataclass(frozen=True)
class PendingWinnerOf:
    round: int
    position: int

    @property
    def source(self) -> str:
        return f"winner:{self.round}:{self.position}"


@dataclass(frozen=True)
class ResolvedTeam:
    team_id: int

    @property
    def source(self) -> str:
        return f"team:{self.team_id}"


Slot = Union[SeedSlot, PendingWinnerOf, ResolvedTeam]


def parse_slot(source: str) -> Slot:
    """
    Parse a serialized slot.

    Examples:
        >>> parse_slot("seed:3")
        SeedSlot(seed=3)
        >>> parse_slot("winner:1:2")
        PendingWinnerOf(round=1, position=2)
    """
    kind, _, rest = source.partition(":")
    try:
        if kind == "seed":
            return SeedSlot(int(rest))
        if kind == "team":
            return ResolvedTeam(int(rest))
        if kind == "winner":
            round_part, _, position_part = rest.partition(":")
            return PendingWinnerOf(int(round_part), int(position_part))
    except ValueError:
        pass
    raise ValueError(f"Invalid bracket slot: {source!r}")


@dataclass(frozen=True)
class BracketFixture:
    """One leg of a bracket tie."""
    round: int
    position: int
    match_type: str
    home: Slot
    away: Slot
    leg: int = 1

    @property
    def home_team_id(self) -> Optional[int]:
        return self.home.team_id if isinstance(self.home, ResolvedTeam) else None

    @property
    def away_team_id(self) -> Optional[int]:
        return self.away.team_id if isinstance(self.away, ResolvedTeam) else None


# =============================================================================
# Bracket math
# =============================================================================

def effective_bracket_size(bracket_size: int) -> int:
    """
    Round a bracket size up to the next power of 2.

    A 6-team bracket is played as an 8-slot bracket with 2 byes.

    Examples:
        >>> effective_bracket_size(8)
        8
        >>> effective_bracket_size(6)
        8
        >>> effective_bracket_size(2)
        2
    """
    if bracket_size < 2:
        raise ConfigurationError(f"Bracket size must be at least 2, got {bracket_size}")
    size = 1
    while size < bracket_size:
        size *= 2
    return size


def total_bracket_rounds(bracket_size: int) -> int:
    """ceil(log2(bracket_size)) - the final is the last of these rounds."""
    return int(math.log2(effective_bracket_size(bracket_size)))


def get_match_type(round_number: int, total_rounds: int) -> str:
    """
    Label a bracket round counted from the final backwards.

    Examples:
        >>> get_match_type(3, 3)
        'final'
        >>> get_match_type(2, 3)
        'semifinal'
        >>> get_match_type(1, 4)
        'elimination'
    """
    from_final = total_rounds - round_number
    if from_final == 0:
        return "final"
    if from_final == 1:
        return "semifinal"
    if from_final == 2:
        return "quarterfinal"
    return "elimination"


def get_next_bracket_position(position: int) -> int:
    """
    Position in the next round fed by the winner of ``position``.

    Examples:
        >>> get_next_bracket_position(1)
        1
        >>> get_next_bracket_position(4)
        2
    """
    return math.ceil(position / 2)


def get_feeder_positions(position: int) -> tuple[int, int]:
    """
    The two previous-round positions that feed ``position``.

    Examples:
        >>> get_feeder_positions(1)
        (1, 2)
        >>> get_feeder_positions(3)
        (5, 6)
    """
    return (2 * position - 1, 2 * position)


def get_next_slot_side(position: int) -> str:
    """'home' if the winner of ``position`` plays at home next round."""
    return "home" if position % 2 == 1 else "away"


def seeding_order(bracket_size: int) -> list[int]:
    """
    Seeds in bracket order for a power-of-2 bracket.

    Consecutive pairs are the round 1 ties. Seed totals per tie are always
    size + 1 and the top two seeds sit in opposite halves.

    Examples:
        >>> seeding_order(4)
        [1, 4, 2, 3]
        >>> seeding_order(8)
        [1, 8, 4, 5, 2, 7, 3, 6]
    """
    size = effective_bracket_size(bracket_size)
    order = [1]
    while len(order) < size:
        total = len(order) * 2 + 1
        order = [seed for current in order for seed in (current, total - current)]
    return order


# =============================================================================
# Generation
# =============================================================================

def _with_return_legs(fixtures: list[BracketFixture]) -> list[BracketFixture]:
    result: list[BracketFixture] = []
    for fixture in fixtures:
        result.append(fixture)
        result.append(
            replace(
                fixture,
                home=fixture.away,
                away=fixture.home,
                leg=2,
                match_type=fixture.match_type + RETURN_LEG_SUFFIX,
            )
        )
    return result


def generate_single_elimination(
    bracket_size: int,
    home_away: bool = False,
) -> list[list[BracketFixture]]:
    """
    Generate every tie of a single-elimination bracket.

    Args:
        bracket_size: Number of participants (rounded up to a power of 2)
        home_away: If True, every tie gets a return leg in the same round
                   with swapped sides and a '_return' match type

    Returns:
        List of rounds; round k (1-based) is element k-1. Round 1 holds
        SeedSlot participants, later rounds PendingWinnerOf slots.
    """
    size = effective_bracket_size(bracket_size)
    total_rounds = total_bracket_rounds(size)
    order = seeding_order(size)

    rounds: list[list[BracketFixture]] = []
    for round_number in range(1, total_rounds + 1):
        matches_in_round = size // (2 ** round_number)
        match_type = get_match_type(round_number, total_rounds)
        fixtures = []
        for position in range(1, matches_in_round + 1):
            if round_number == 1:
                home: Slot = SeedSlot(order[2 * position - 2])
                away: Slot = SeedSlot(order[2 * position - 1])
            else:
                top, bottom = get_feeder_positions(position)
                home = PendingWinnerOf(round_number - 1, top)
                away = PendingWinnerOf(round_number - 1, bottom)
            fixtures.append(
                BracketFixture(
                    round=round_number,
                    position=position,
                    match_type=match_type,
                    home=home,
                    away=away,
                )
            )
        rounds.append(_with_return_legs(fixtures) if home_away else fixtures)

    return rounds


def _place_in_tie(fixture: BracketFixture, side: str, slot: Slot) -> BracketFixture:
    """Put ``slot`` on the tie's ``side`` (leg-1 orientation)."""
    home_side = (side == "home") == (fixture.leg == 1)
    if home_side:
        return replace(fixture, home=slot)
    return replace(fixture, away=slot)


def seed_bracket(
    rounds: list[list[BracketFixture]],
    team_ids: Sequence[int],
) -> list[list[BracketFixture]]:
    """
    Fill round 1 seeds with teams and resolve byes.

    Seed k is ``team_ids[k-1]``. A round 1 tie with a missing seed is a
    bye: it is dropped and the present team is placed directly into its
    next-round slot, so no match is ever created with a single side.

    Raises:
        ConfigurationError: if some round 1 tie would have no team at all
            (fewer than half the bracket filled)
    """
    if not rounds:
        return []

    size = 2 * len({f.position for f in rounds[0]})
    if len(team_ids) > size:
        logger.info(
            "Bracket of %d holds only the first %d of %d teams",
            size, size, len(team_ids),
        )
    if len(team_ids) * 2 <= size:
        raise ConfigurationError(
            f"A bracket of {size} needs more than {size // 2} teams, got {len(team_ids)}"
        )

    teams_by_seed = {seed: team_id for seed, team_id in enumerate(team_ids[:size], start=1)}

    def resolve(slot: Slot) -> Optional[Slot]:
        if isinstance(slot, SeedSlot):
            team_id = teams_by_seed.get(slot.seed)
            return ResolvedTeam(team_id) if team_id is not None else None
        return slot

    first_round: list[BracketFixture] = []
    bye_winners: dict[int, ResolvedTeam] = {}
    for fixture in rounds[0]:
        home = resolve(fixture.home)
        away = resolve(fixture.away)
        if home is None or away is None:
            advancing = home or away
            bye_winners[fixture.position] = advancing
            continue
        first_round.append(replace(fixture, home=home, away=away))

    seeded = [first_round]
    if len(rounds) > 1:
        second_round = []
        for fixture in rounds[1]:
            for slot in (fixture.home, fixture.away):
                if isinstance(slot, PendingWinnerOf) and slot.position in bye_winners:
                    side = get_next_slot_side(slot.position)
                    fixture = _place_in_tie(fixture, side, bye_winners[slot.position])
            second_round.append(fixture)
        seeded.append(second_round)
    seeded.extend(rounds[2:])

    if bye_winners:
        logger.debug("Resolved %d first-round byes", len(bye_winners))
    return seeded


# =============================================================================
# Tie resolution
# =============================================================================

def decide_tie_winner(legs: Sequence) -> Optional[int]:
    """
    Winner of a bracket tie from its legs (objects with home_team_id,
    away_team_id, home_score, away_score).

    Goals are aggregated per team over all legs. A level aggregate has no
    winner and returns None.
    """
    goals: dict[int, int] = {}
    for leg in legs:
        if leg.home_team_id is None or leg.away_team_id is None:
            return None
        goals[leg.home_team_id] = goals.get(leg.home_team_id, 0) + leg.home_score
        goals[leg.away_team_id] = goals.get(leg.away_team_id, 0) + leg.away_score

    if len(goals) != 2:
        return None
    (team_a, goals_a), (team_b, goals_b) = goals.items()
    if goals_a == goals_b:
        return None
    return team_a if goals_a > goals_b else team_b
