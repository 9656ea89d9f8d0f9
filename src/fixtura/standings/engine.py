"""
Standings maintenance from finished matches.

Standings are a materialized view of finished matches: one row per
(tournament, team, group) holding played/won/drawn/lost, goals and points.

Two ways to keep them current:

1. ``apply_finished_match`` - incremental. Adds one finished match to both
   teams' rows and stamps ``match.standings_applied_at``. A match that is
   already stamped is skipped, so replaying the same event is a no-op.
2. ``recalculate`` - rebuild. Deletes every row of the tournament, clears
   the stamps and replays all finished matches. Every update is a plain
   addition, so the result does not depend on replay order.

All mutations of one tournament run under ``fixtura.locks.tournament_lock``
and standing rows are loaded FOR UPDATE.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from fixtura.config import Settings, get_settings
from fixtura.db.models import Match, Standing
from fixtura.db.store import EntityStore, SqlAlchemyStore
from fixtura.locks import tournament_lock

logger = logging.getLogger(__name__)

WIN = "win"
DRAW = "draw"
LOSS = "loss"


@dataclass(frozen=True)
class PointsSystem:
    """Points awarded per result."""
    win: int = 3
    draw: int = 1
    loss: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "PointsSystem":
        return cls(
            win=settings.points_for_win,
            draw=settings.points_for_draw,
            loss=settings.points_for_loss,
        )

    def points_for(self, outcome: str) -> int:
        return {WIN: self.win, DRAW: self.draw, LOSS: self.loss}[outcome]


def match_outcomes(home_score: int, away_score: int) -> tuple[str, str]:
    """
    (home outcome, away outcome) for a final score.

    Examples:
        >>> match_outcomes(2, 1)
        ('win', 'loss')
        >>> match_outcomes(0, 0)
        ('draw', 'draw')
    """
    if home_score > away_score:
        return WIN, LOSS
    if home_score < away_score:
        return LOSS, WIN
    return DRAW, DRAW


def apply_result(
    standing: Standing,
    goals_for: int,
    goals_against: int,
    outcome: str,
    points: PointsSystem,
) -> None:
    """Add one result to a standing row in place."""
    standing.matches_played += 1
    standing.goals_for += goals_for
    standing.goals_against += goals_against
    if outcome == WIN:
        standing.wins += 1
    elif outcome == DRAW:
        standing.draws += 1
    else:
        standing.losses += 1
    standing.points += points.points_for(outcome)
    standing.goal_difference = standing.goals_for - standing.goals_against


class StandingsEngine:
    """
    Applies finished matches to standings and rebuilds them on demand.

    Usage:
        engine = StandingsEngine(SqlAlchemyStore(session))
        engine.apply_finished_match(match)
        session.commit()

    Args:
        store: Entity store the engine reads and writes through
        points: Points system (defaults to the configured 3/1/0)
        lock_timeout_seconds: Wait limit for the per-tournament lock
    """

    def __init__(
        self,
        store: EntityStore,
        points: Optional[PointsSystem] = None,
        lock_timeout_seconds: Optional[float] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.store = store
        self.points = points or PointsSystem.from_settings(settings)
        self.lock_timeout_seconds = (
            lock_timeout_seconds
            if lock_timeout_seconds is not None
            else settings.standings_lock_timeout_seconds
        )

    @classmethod
    def from_session(cls, session: Session) -> "StandingsEngine":
        return cls(SqlAlchemyStore(session))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply_finished_match(self, match: Match) -> bool:
        """
        Add a finished match to both teams' standings, at most once.

        Returns:
            True if the standings changed, False if the match is not
            finished, lacks a team, or was already applied.
        """
        if not match.is_finished:
            logger.debug("Match %s is %s, not applying to standings", match.id, match.status)
            return False
        if match.home_team_id is None or match.away_team_id is None:
            logger.warning("Finished match %s has an unresolved team, skipping standings", match.id)
            return False

        with tournament_lock(
            self.store.session,
            match.tournament_id,
            timeout_seconds=self.lock_timeout_seconds,
        ):
            if match.standings_applied_at is not None:
                logger.debug(
                    "Match %s already applied to standings at %s",
                    match.id, match.standings_applied_at,
                )
                return False
            self._apply(match)

        logger.info(
            "Applied match %s (%d-%d) to standings of tournament %s",
            match.id, match.home_score, match.away_score, match.tournament_id,
        )
        return True

    def recalculate(self, tournament_id: int) -> list[Standing]:
        """
        Rebuild all standings of a tournament from its finished matches.

        Returns:
            The ranked standings (see ``list_standings``)
        """
        with tournament_lock(
            self.store.session,
            tournament_id,
            timeout_seconds=self.lock_timeout_seconds,
        ):
            deleted = self.store.delete_standings(tournament_id)
            self.store.clear_standings_markers(tournament_id)

            replayed = 0
            skipped = 0
            for match in self.store.list_finished_matches(tournament_id):
                if match.home_team_id is None or match.away_team_id is None:
                    skipped += 1
                    continue
                self._apply(match)
                replayed += 1

        logger.info(
            "Recalculated standings for tournament %s: %d rows dropped, %d matches replayed",
            tournament_id, deleted, replayed,
        )
        if skipped:
            logger.warning(
                "Skipped %d finished matches with unresolved teams in tournament %s",
                skipped, tournament_id,
            )
        return self.list_standings(tournament_id)

    def list_standings(self, tournament_id: int, group_id: Optional[int] = None) -> list[Standing]:
        return self.store.list_standings(tournament_id, group_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply(self, match: Match) -> None:
        home_outcome, away_outcome = match_outcomes(match.home_score, match.away_score)

        home = self.store.get_or_create_standing(
            match.tournament_id, match.home_team_id, match.group_id
        )
        apply_result(home, match.home_score, match.away_score, home_outcome, self.points)
        self.store.save_standing(home)

        away = self.store.get_or_create_standing(
            match.tournament_id, match.away_team_id, match.group_id
        )
        apply_result(away, match.away_score, match.home_score, away_outcome, self.points)
        self.store.save_standing(away)

        match.standings_applied_at = datetime.utcnow()
        # Keep rows in the database in step with the identity map so the
        # next FOR UPDATE lookup reads current totals
        self.store.session.flush()
