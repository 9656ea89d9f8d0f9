"""
Match result recording.

This is the entry point for score and status updates. It keeps the
derived state consistent with the match:

1. A match entering ``finished`` is applied to the standings (once).
2. A finished match whose score is corrected, or that is re-opened, makes
   the standings rebuild from scratch (incremental undo is not attempted).
3. In a bracket, once every leg of a tie is finished, the aggregate
   winner is written into the next round's slot. Corrections re-run the
   same propagation, and a slot whose match has already kicked off is
   left alone.

Usage:
    with get_session() as session:
        outcome = record_match_result(session, match_id, 2, 1)
        print(outcome.standings_applied)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from fixtura.config import Settings
from fixtura.db.models import Match, Standing
from fixtura.db.store import EntityStore, SqlAlchemyStore
from fixtura.exceptions import InvalidTransitionError, MatchNotReadyError
from fixtura.scheduling.elimination import (
    PendingWinnerOf,
    ResolvedTeam,
    Slot,
    decide_tie_winner,
    get_next_bracket_position,
    get_next_slot_side,
)
from fixtura.standings.engine import StandingsEngine
from fixtura.statuses import MatchStatus, parse_match_status

logger = logging.getLogger(__name__)


@dataclass
class ResultOutcome:
    """What a result update changed besides the match itself."""
    match: Match
    previous_status: MatchStatus
    standings_applied: bool = False
    standings_recalculated: bool = False
    propagated_match_ids: list[int] = field(default_factory=list)


def _validate_score(value: object, label: str) -> int:
    # bool is an int subclass; a True score is a caller bug
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{label} must be >= 0, got {value}")
    return value


def record_match_result(
    session: Session,
    match_id: int,
    home_score: int,
    away_score: int,
    status: MatchStatus | str = MatchStatus.FINISHED,
    *,
    settings: Optional[Settings] = None,
) -> ResultOutcome:
    """
    Set a match's score and status and update everything derived from it.

    Args:
        session: Active SQLAlchemy session. Caller is responsible for commit.
        match_id: Match to update
        home_score: Goals of the home side (>= 0)
        away_score: Goals of the away side (>= 0)
        status: New match status (scheduled, live or finished)

    Raises:
        ValueError: unknown status or invalid score
        EntityNotFoundError: no such match
        MatchNotReadyError: the match would go live or finish before both
            teams are known
    """
    target = parse_match_status(status)
    home_score = _validate_score(home_score, "home_score")
    away_score = _validate_score(away_score, "away_score")

    store = SqlAlchemyStore(session)
    match = store.get_match(match_id, for_update=True)

    if target != MatchStatus.SCHEDULED and not match.is_resolved:
        raise MatchNotReadyError(
            f"Match {match_id} cannot be {target.value}: "
            f"teams unresolved ({match.home_source} vs {match.away_source})"
        )

    previous = match.status
    was_finished = previous == MatchStatus.FINISHED
    score_changed = (match.home_score, match.away_score) != (home_score, away_score)

    match.home_score = home_score
    match.away_score = away_score
    match.status = target
    session.flush()

    outcome = ResultOutcome(match=match, previous_status=previous)
    standings = StandingsEngine(store, settings=settings)

    if was_finished and (target != MatchStatus.FINISHED or score_changed):
        logger.info(
            "Match %s changed after finishing (%s -> %s, score %d-%d); rebuilding standings",
            match.id, previous.value, target.value, home_score, away_score,
        )
        standings.recalculate(match.tournament_id)
        outcome.standings_recalculated = True
        outcome.propagated_match_ids = propagate_tie_result(store, match)
    elif target == MatchStatus.FINISHED and not was_finished:
        outcome.standings_applied = standings.apply_finished_match(match)
        outcome.propagated_match_ids = propagate_tie_result(store, match)

    return outcome


def start_match(session: Session, match_id: int) -> ResultOutcome:
    """
    Kick off a scheduled match (status live, score kept).

    Raises:
        InvalidTransitionError: the match is not scheduled
        MatchNotReadyError: a team is still unresolved
    """
    match = SqlAlchemyStore(session).get_match(match_id)
    if match.status != MatchStatus.SCHEDULED:
        raise InvalidTransitionError(match.status.value, MatchStatus.LIVE.value)
    return record_match_result(
        session, match_id, match.home_score, match.away_score, MatchStatus.LIVE
    )


def finish_match(session: Session, match_id: int) -> ResultOutcome:
    """Finish a match with its current score."""
    match = SqlAlchemyStore(session).get_match(match_id)
    return record_match_result(
        session, match_id, match.home_score, match.away_score, MatchStatus.FINISHED
    )


def recalculate_standings(session: Session, tournament_id: int) -> list[Standing]:
    """Rebuild a tournament's standings from its finished matches."""
    SqlAlchemyStore(session).get_tournament(tournament_id)
    return StandingsEngine.from_session(session).recalculate(tournament_id)


# =============================================================================
# Bracket propagation
# =============================================================================

def propagate_tie_result(store: EntityStore, match: Match) -> list[int]:
    """
    Write the outcome of ``match``'s tie into the next round.

    The next-round slot gets the aggregate winner when every leg is
    finished, and goes back to pending otherwise (re-opened leg, level
    aggregate). Next-round legs that are no longer scheduled are not
    touched.

    Returns:
        Ids of the next-round matches that changed
    """
    if not match.is_bracket_match:
        return []

    next_legs = store.find_bracket_legs(
        match.phase_id, match.round + 1, get_next_bracket_position(match.bracket_position)
    )
    if not next_legs:
        # The final
        return []

    legs = store.find_bracket_legs(match.phase_id, match.round, match.bracket_position)
    slot: Slot = PendingWinnerOf(match.round, match.bracket_position)
    if legs and all(leg.is_finished for leg in legs):
        winner_id = decide_tie_winner(legs)
        if winner_id is None:
            logger.warning(
                "Tie round %d position %d of phase %s is level on aggregate; "
                "next-round slot stays pending",
                match.round, match.bracket_position, match.phase_id,
            )
        else:
            slot = ResolvedTeam(winner_id)

    side = get_next_slot_side(match.bracket_position)
    changed = []
    for next_leg in next_legs:
        if _set_slot(next_leg, side, slot):
            changed.append(next_leg.id)
    if changed:
        store.session.flush()
        logger.info(
            "Propagated round %d position %d -> round %d position %d (%s)",
            match.round, match.bracket_position,
            match.round + 1, get_next_bracket_position(match.bracket_position),
            slot.source,
        )
    return changed


def _set_slot(next_leg: Match, side: str, slot: Slot) -> bool:
    team_id = slot.team_id if isinstance(slot, ResolvedTeam) else None
    # Return legs play the tie with sides swapped
    home_side = (side == "home") == (next_leg.leg == 1)
    current_source = next_leg.home_source if home_side else next_leg.away_source
    if current_source == slot.source:
        return False

    if next_leg.status != MatchStatus.SCHEDULED:
        logger.warning(
            "Match %s is already %s; not replacing %s with %s",
            next_leg.id, next_leg.status.value, current_source, slot.source,
        )
        return False

    if home_side:
        next_leg.home_source = slot.source
        next_leg.home_team_id = team_id
    else:
        next_leg.away_source = slot.source
        next_leg.away_team_id = team_id
    return True
