"""
SQLAlchemy ORM models for Fixtura.

This module defines all database tables and their relationships.
The schema is designed around phases: a tournament is played as an
ordered list of phases, each with its own scheduling algorithm and
lifecycle status, and every match belongs to exactly one phase.

Key design decisions:
- Teams join tournaments through tournament_teams; joined_at (then team id)
  is the documented fixture-generation order
- Matches link to teams via foreign keys (never raw names)
- Bracket matches may have an unresolved side; home_source/away_source
  describe where the team will come from (seed or winner of a feeder tie)
- Standings are a materialized view over finished matches; each match
  carries a marker recording that it has been applied
- Status and type columns are closed enums stored as strings

Tables:
- tournaments: Tournament master data
- teams: Team records
- tournament_teams: Team registrations per tournament
- tournament_phases: Phases of a tournament
- groups: Groups created by a groups phase
- matches: All matches (scheduled, live and finished)
- standings: Per-team aggregates per tournament (and per group)
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from fixtura.exceptions import ConfigurationError
from fixtura.statuses import MatchStatus, PhaseStatus, PhaseType, parse_phase_type


def _enum_column(enum_cls) -> SAEnum:
    """String-backed enum column storing member values (not names)."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        validate_strings=True,
        length=30,
        values_callable=lambda members: [member.value for member in members],
    )


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Tournament and Team Models
# =============================================================================

class Tournament(Base):
    """
    Tournament master data.

    ``rounds`` is the number of full round-robin cycles played by
    round-robin phases (1 = everyone meets once per cycle direction).
    The legacy single-format field is kept for old rows only and is not
    read by the engines; phases are the canonical format model.
    """
    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    rounds: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    format: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    registrations: Mapped[list["TournamentTeam"]] = relationship(
        back_populates="tournament", cascade="all, delete-orphan"
    )
    phases: Mapped[list["Phase"]] = relationship(
        back_populates="tournament", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("rounds >= 1", name="ck_tournament_rounds_positive"),
    )

    def __repr__(self) -> str:
        return f"<Tournament(id={self.id}, name='{self.name}')>"


class Team(Base):
    """A team. Scheduling only ever references it by id."""
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, name='{self.name}')>"


class TournamentTeam(Base):
    """
    Registration of a team in a tournament.

    Fixture output depends entirely on the order teams are passed to the
    schedulers, so the registration timestamp (then team id) is the
    ordering contract for fixture generation.
    """
    __tablename__ = "tournament_teams"

    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), primary_key=True
    )
    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    tournament: Mapped["Tournament"] = relationship(back_populates="registrations")
    team: Mapped["Team"] = relationship()

    __table_args__ = (
        Index("idx_tournament_teams_order", "tournament_id", "joined_at", "team_id"),
    )

    def __repr__(self) -> str:
        return f"<TournamentTeam(tournament_id={self.tournament_id}, team_id={self.team_id})>"


# =============================================================================
# Phase Models
# =============================================================================

class Phase(Base):
    """
    One stage of a tournament with its own scheduling algorithm.

    Phase status lifecycle:
    - 'pending': Created, fixtures can be generated freely
    - 'active': Being played
    - 'completed': Finished (terminal)
    - 'cancelled': Abandoned (terminal)

    ``type`` cannot change once fixtures exist, since the existing matches
    were built by the old type's scheduler.
    """
    __tablename__ = "tournament_phases"

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    phase_number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[PhaseType] = mapped_column(_enum_column(PhaseType), nullable=False)
    status: Mapped[PhaseStatus] = mapped_column(
        _enum_column(PhaseStatus), nullable=False, default=PhaseStatus.PENDING
    )

    # Scheduling configuration
    home_away: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    teams_advance: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    groups_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    teams_per_group: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Set every time fixtures are (re)generated
    fixtures_generated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    tournament: Mapped["Tournament"] = relationship(back_populates="phases")
    matches: Mapped[list["Match"]] = relationship(
        back_populates="phase", cascade="all, delete-orphan"
    )
    groups: Mapped[list["Group"]] = relationship(
        back_populates="phase", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("tournament_id", "phase_number", name="uq_phase_number"),
        Index("idx_phases_tournament_status", "tournament_id", "status"),
    )

    @validates("type")
    def _validate_type(self, key, value):
        value = parse_phase_type(value)
        if (
            self.fixtures_generated_at is not None
            and self.type is not None
            and value != self.type
        ):
            raise ConfigurationError(
                f"Phase {self.id} already has fixtures; its type cannot change "
                f"from '{self.type.value}' to '{value.value}'"
            )
        return value

    def __repr__(self) -> str:
        return (
            f"<Phase(id={self.id}, number={self.phase_number}, "
            f"type='{self.type}', status='{self.status}')>"
        )


class Group(Base):
    """A group created by a groups phase (group_number is 1-based)."""
    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    phase_id: Mapped[int] = mapped_column(
        ForeignKey("tournament_phases.id", ondelete="CASCADE"), nullable=False
    )
    group_number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    phase: Mapped["Phase"] = relationship(back_populates="groups")

    __table_args__ = (
        UniqueConstraint("phase_id", "group_number", name="uq_group_phase_number"),
    )

    def __repr__(self) -> str:
        return f"<Group(phase_id={self.phase_id}, number={self.group_number})>"


# =============================================================================
# Match Models
# =============================================================================

class Match(Base):
    """
    A fixture and, once played, its result.

    Match status lifecycle:
    - 'scheduled': Created by a scheduler
    - 'live': Being played
    - 'finished': Result final; counts towards standings

    Bracket matches (single elimination):
    - bracket_position is 1-indexed within the round; the winner of position
      p feeds position ceil(p/2) of the next round
    - leg is 1, or 2 for the return leg of a home/away tie
    - home_source/away_source hold the serialized slot ('seed:3',
      'winner:1:2', 'team:17'); the team id columns stay NULL until known
    """
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(primary_key=True)

    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    phase_id: Mapped[int] = mapped_column(
        ForeignKey("tournament_phases.id", ondelete="CASCADE"), nullable=False
    )

    # Fixture placement
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    group_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    group_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"), nullable=True
    )
    match_type: Mapped[str] = mapped_column(String(40), nullable=False, default="regular")

    # Bracket placement
    bracket_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    leg: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    home_source: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    away_source: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # Teams
    home_team_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id"), nullable=True)
    away_team_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id"), nullable=True)

    # Result
    status: Mapped[MatchStatus] = mapped_column(
        _enum_column(MatchStatus), nullable=False, default=MatchStatus.SCHEDULED
    )
    home_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    away_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Set once this match's result has been added to the standings
    standings_applied_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    phase: Mapped["Phase"] = relationship(back_populates="matches")
    group: Mapped[Optional["Group"]] = relationship()
    home_team: Mapped[Optional["Team"]] = relationship(foreign_keys=[home_team_id])
    away_team: Mapped[Optional["Team"]] = relationship(foreign_keys=[away_team_id])

    __table_args__ = (
        Index("idx_matches_phase_round", "phase_id", "round"),
        Index("idx_matches_tournament_status", "tournament_id", "status"),
        Index("idx_matches_bracket", "phase_id", "round", "bracket_position"),
        CheckConstraint(
            "home_team_id IS NULL OR away_team_id IS NULL OR home_team_id <> away_team_id",
            name="ck_match_distinct_teams",
        ),
        CheckConstraint(
            "home_score >= 0 AND away_score >= 0", name="ck_match_scores_non_negative"
        ),
    )

    @property
    def is_finished(self) -> bool:
        """Check if the result is final."""
        return self.status == MatchStatus.FINISHED

    @property
    def is_resolved(self) -> bool:
        """Check if both teams are known."""
        return self.home_team_id is not None and self.away_team_id is not None

    @property
    def is_bracket_match(self) -> bool:
        return self.bracket_position is not None

    def __repr__(self) -> str:
        return (
            f"<Match(id={self.id}, round={self.round}, "
            f"{self.home_team_id} vs {self.away_team_id}, status='{self.status}')>"
        )


# =============================================================================
# Standings Models
# =============================================================================

class Standing(Base):
    """
    Per-team aggregate for a tournament, optionally scoped to a group.

    Derived entirely from finished matches. Rows are created lazily the
    first time a team's result is processed and can always be rebuilt
    from scratch.
    """
    __tablename__ = "standings"

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    group_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"), nullable=True
    )

    matches_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    draws: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goals_for: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goals_against: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goal_difference: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    team: Mapped["Team"] = relationship()

    __table_args__ = (
        UniqueConstraint("tournament_id", "team_id", "group_id", name="uq_standing_key"),
        Index(
            "idx_standings_ranking",
            "tournament_id",
            "points",
            "goal_difference",
            "goals_for",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Standing(team_id={self.team_id}, group_id={self.group_id}, "
            f"pts={self.points}, gd={self.goal_difference})>"
        )
