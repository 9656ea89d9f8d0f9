"""
Entity store used by the phase and standings engines.

The engines never query the database directly: they talk to an
``EntityStore``. ``SqlAlchemyStore`` is the implementation backed by the
ORM models in ``fixtura.db.models``; any object satisfying the protocol
can be injected instead.

The store only flushes. Committing (or rolling back) is the caller's job,
typically through ``fixtura.db.get_session``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, runtime_checkable

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from fixtura.db.models import (
    Group,
    Match,
    Phase,
    Standing,
    Team,
    Tournament,
    TournamentTeam,
)
from fixtura.exceptions import EntityNotFoundError
from fixtura.statuses import MatchStatus, PhaseStatus, parse_match_status

logger = logging.getLogger(__name__)


@dataclass
class MatchRecord:
    """Everything needed to persist one scheduled match."""
    tournament_id: int
    phase_id: int
    round: int
    match_type: str
    home_team_id: Optional[int]
    away_team_id: Optional[int]
    group_number: Optional[int] = None
    group_id: Optional[int] = None
    bracket_position: Optional[int] = None
    leg: int = 1
    home_source: Optional[str] = None
    away_source: Optional[str] = None


@runtime_checkable
class EntityStore(Protocol):
    """Persistence operations the engines depend on."""

    session: Session

    def get_tournament(self, tournament_id: int) -> Tournament: ...

    def get_phase(self, phase_id: int) -> Phase: ...

    def get_match(self, match_id: int, *, for_update: bool = False) -> Match: ...

    def list_teams(self, tournament_id: int) -> list[Team]: ...

    def create_match(self, record: MatchRecord) -> Match: ...

    def delete_matches(self, phase_id: int) -> int: ...

    def list_phase_matches(
        self, phase_id: int, statuses: Optional[Iterable[str]] = None
    ) -> list[Match]: ...

    def count_phase_matches_by_status(self, phase_id: int) -> dict[MatchStatus, int]: ...

    def find_bracket_legs(self, phase_id: int, round_number: int, position: int) -> list[Match]: ...

    def create_group(self, tournament_id: int, phase_id: int, group_number: int, name: str) -> Group: ...

    def delete_groups(self, phase_id: int) -> int: ...

    def get_group_by_number(self, phase_id: int, group_number: int) -> Optional[Group]: ...

    def get_or_create_standing(
        self, tournament_id: int, team_id: int, group_id: Optional[int] = None
    ) -> Standing: ...

    def save_standing(self, standing: Standing) -> None: ...

    def delete_standings(self, tournament_id: int) -> int: ...

    def list_standings(self, tournament_id: int, group_id: Optional[int] = None) -> list[Standing]: ...

    def list_finished_matches(self, tournament_id: int) -> list[Match]: ...

    def clear_standings_markers(self, tournament_id: int) -> int: ...

    def next_phase_number(self, tournament_id: int) -> int: ...

    def create_phase(self, **fields) -> Phase: ...

    def delete_phase(self, phase: Phase) -> None: ...


class SqlAlchemyStore:
    """
    EntityStore implementation on top of a SQLAlchemy session.

    Usage:
        with get_session() as session:
            store = SqlAlchemyStore(session)
            teams = store.list_teams(tournament_id)
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_tournament(self, tournament_id: int) -> Tournament:
        tournament = self.session.get(Tournament, tournament_id)
        if tournament is None:
            raise EntityNotFoundError("Tournament", tournament_id)
        return tournament

    def get_phase(self, phase_id: int) -> Phase:
        phase = self.session.get(Phase, phase_id)
        if phase is None:
            raise EntityNotFoundError("Phase", phase_id)
        return phase

    def get_match(self, match_id: int, *, for_update: bool = False) -> Match:
        match = self.session.get(Match, match_id, with_for_update=for_update or None)
        if match is None:
            raise EntityNotFoundError("Match", match_id)
        return match

    def list_teams(self, tournament_id: int) -> list[Team]:
        """
        Registered teams in fixture-generation order.

        Order is registration time, then team id, so regenerating fixtures
        for an unchanged roster reproduces the same schedule.
        """
        stmt = (
            select(Team)
            .join(TournamentTeam, TournamentTeam.team_id == Team.id)
            .where(TournamentTeam.tournament_id == tournament_id)
            .order_by(TournamentTeam.joined_at, TournamentTeam.team_id)
        )
        return list(self.session.scalars(stmt))

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def create_match(self, record: MatchRecord) -> Match:
        match = Match(
            tournament_id=record.tournament_id,
            phase_id=record.phase_id,
            round=record.round,
            group_number=record.group_number,
            group_id=record.group_id,
            match_type=record.match_type,
            bracket_position=record.bracket_position,
            leg=record.leg,
            home_source=record.home_source,
            away_source=record.away_source,
            home_team_id=record.home_team_id,
            away_team_id=record.away_team_id,
            status=MatchStatus.SCHEDULED,
            home_score=0,
            away_score=0,
        )
        self.session.add(match)
        return match

    def delete_matches(self, phase_id: int) -> int:
        result = self.session.execute(
            delete(Match).where(Match.phase_id == phase_id)
        )
        return result.rowcount or 0

    def list_phase_matches(
        self, phase_id: int, statuses: Optional[Iterable[str]] = None
    ) -> list[Match]:
        """
        Matches of a phase in round order, optionally filtered by status.

        Raises:
            ValueError: if a requested status is not a match status
        """
        stmt = select(Match).where(Match.phase_id == phase_id)
        if statuses is not None:
            wanted = [parse_match_status(status) for status in statuses]
            stmt = stmt.where(Match.status.in_(wanted))
        stmt = stmt.order_by(
            Match.round,
            Match.group_number,
            Match.bracket_position,
            Match.leg,
            Match.id,
        )
        return list(self.session.scalars(stmt))

    def count_phase_matches_by_status(self, phase_id: int) -> dict[MatchStatus, int]:
        stmt = (
            select(Match.status, func.count(Match.id))
            .where(Match.phase_id == phase_id)
            .group_by(Match.status)
        )
        counts = {status: 0 for status in MatchStatus}
        for status, count in self.session.execute(stmt):
            counts[MatchStatus(status)] = count
        return counts

    def find_bracket_legs(self, phase_id: int, round_number: int, position: int) -> list[Match]:
        """All legs of one bracket tie, first leg first."""
        stmt = (
            select(Match)
            .where(
                Match.phase_id == phase_id,
                Match.round == round_number,
                Match.bracket_position == position,
            )
            .order_by(Match.leg)
        )
        return list(self.session.scalars(stmt))

    def list_finished_matches(self, tournament_id: int) -> list[Match]:
        stmt = (
            select(Match)
            .where(
                Match.tournament_id == tournament_id,
                Match.status == MatchStatus.FINISHED,
            )
            .order_by(Match.id)
        )
        return list(self.session.scalars(stmt))

    def clear_standings_markers(self, tournament_id: int) -> int:
        result = self.session.execute(
            update(Match)
            .where(
                Match.tournament_id == tournament_id,
                Match.standings_applied_at.isnot(None),
            )
            .values(standings_applied_at=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(self, tournament_id: int, phase_id: int, group_number: int, name: str) -> Group:
        group = Group(
            tournament_id=tournament_id,
            phase_id=phase_id,
            group_number=group_number,
            name=name,
        )
        self.session.add(group)
        return group

    def delete_groups(self, phase_id: int) -> int:
        """Delete a phase's groups together with the standings scoped to them."""
        group_ids = list(
            self.session.scalars(select(Group.id).where(Group.phase_id == phase_id))
        )
        if not group_ids:
            return 0
        self.session.execute(delete(Standing).where(Standing.group_id.in_(group_ids)))
        result = self.session.execute(delete(Group).where(Group.id.in_(group_ids)))
        return result.rowcount or 0

    def get_group_by_number(self, phase_id: int, group_number: int) -> Optional[Group]:
        stmt = select(Group).where(
            Group.phase_id == phase_id, Group.group_number == group_number
        )
        return self.session.scalars(stmt).first()

    # ------------------------------------------------------------------
    # Standings
    # ------------------------------------------------------------------

    def get_or_create_standing(
        self,
        tournament_id: int,
        team_id: int,
        group_id: Optional[int] = None,
    ) -> Standing:
        """
        Fetch the standing row for (tournament, team, group), creating a
        zeroed row on first touch. Existing rows are locked FOR UPDATE.
        """
        stmt = (
            select(Standing)
            .where(
                Standing.tournament_id == tournament_id,
                Standing.team_id == team_id,
                Standing.group_id.is_(None) if group_id is None else Standing.group_id == group_id,
            )
            .with_for_update()
        )
        standing = self.session.scalars(stmt).first()
        if standing is not None:
            return standing

        standing = Standing(
            tournament_id=tournament_id,
            team_id=team_id,
            group_id=group_id,
            matches_played=0,
            wins=0,
            draws=0,
            losses=0,
            goals_for=0,
            goals_against=0,
            goal_difference=0,
            points=0,
        )
        self.session.add(standing)
        # Flush so the next lookup in this transaction finds the row
        self.session.flush()
        logger.debug(
            "Created standing for team %s in tournament %s (group=%s)",
            team_id, tournament_id, group_id,
        )
        return standing

    def save_standing(self, standing: Standing) -> None:
        self.session.add(standing)

    def delete_standings(self, tournament_id: int) -> int:
        result = self.session.execute(
            delete(Standing).where(Standing.tournament_id == tournament_id)
        )
        return result.rowcount or 0

    def list_standings(self, tournament_id: int, group_id: Optional[int] = None) -> list[Standing]:
        """
        Ranked standings: points, then goal difference, then goals for
        (all descending). Rows equal on all three keys have no defined
        relative order.

        With ``group_id`` only that group's rows are returned; without it,
        every row of the tournament.
        """
        stmt = select(Standing).where(Standing.tournament_id == tournament_id)
        if group_id is not None:
            stmt = stmt.where(Standing.group_id == group_id)
        stmt = stmt.order_by(
            Standing.points.desc(),
            Standing.goal_difference.desc(),
            Standing.goals_for.desc(),
        )
        return list(self.session.scalars(stmt))

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def next_phase_number(self, tournament_id: int) -> int:
        current = self.session.scalar(
            select(func.max(Phase.phase_number)).where(Phase.tournament_id == tournament_id)
        )
        return (current or 0) + 1

    def create_phase(self, **fields) -> Phase:
        fields.setdefault("status", PhaseStatus.PENDING)
        phase = Phase(**fields)
        self.session.add(phase)
        self.session.flush()
        return phase

    def delete_phase(self, phase: Phase) -> None:
        self.delete_matches(phase.id)
        self.delete_groups(phase.id)
        # Bulk deletes bypass loaded collections; reload them empty
        self.session.expire(phase, ["matches", "groups"])
        self.session.delete(phase)
        self.session.flush()


__all__ = [
    "EntityStore",
    "MatchRecord",
    "SqlAlchemyStore",
]
