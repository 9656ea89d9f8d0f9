"""
Phase lifecycle and fixture generation.

A phase moves through a strict status whitelist:

    pending -> active -> completed
       |          |
       +----------+---> cancelled

Fixture generation is independent of status: it wipes the phase's
matches (and groups) and rebuilds them from the registered teams with the
scheduler matching ``phase.type``. Gating regeneration of a running phase
is left to the caller.

The engine only flushes. Wrap each call in one transaction
(``fixtura.db.get_session``) so a half-regenerated phase is never
committed.

Usage:
    with get_session() as session:
        engine = PhaseEngine(SqlAlchemyStore(session))
        result = engine.generate_fixtures(tournament_id, phase_id)
        engine.start_phase(phase_id)
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from fixtura.config import Settings, get_settings
from fixtura.db.models import Phase, Tournament
from fixtura.db.store import EntityStore, MatchRecord, SqlAlchemyStore
from fixtura.exceptions import (
    ConfigurationError,
    EntityNotFoundError,
    InvalidTransitionError,
    UnsupportedPhaseTypeError,
)
from fixtura.scheduling.elimination import (
    generate_single_elimination,
    seed_bracket,
)
from fixtura.scheduling.groups import GROUP_MATCH_TYPE, generate_groups
from fixtura.scheduling.round_robin import generate_round_robin_cycles
from fixtura.statuses import (
    MatchStatus,
    PhaseStatus,
    PhaseType,
    allowed_transitions,
    can_transition,
    parse_phase_status,
    parse_phase_type,
)

logger = logging.getLogger(__name__)

REGULAR_MATCH_TYPE = "regular"


@dataclass
class FixtureGenerationResult:
    """Outcome of one fixture generation run."""
    phase_id: int
    phase_type: PhaseType
    matches_created: int = 0
    total_rounds: int = 0
    matches_deleted: int = 0
    groups_created: int = 0
    byes: int = 0
    finished_discarded: int = 0
    timings: dict[str, float] = field(
        default_factory=lambda: {"schedule": 0.0, "persist": 0.0, "total": 0.0}
    )

    def summary(self) -> str:
        """Return a human-readable summary of the generation run."""
        lines = [
            f"Fixture generation complete (phase {self.phase_id}, {self.phase_type.value}):",
            f"  Matches created:  {self.matches_created}",
            f"  Total rounds:     {self.total_rounds}",
            f"  Matches replaced: {self.matches_deleted}",
            f"  Groups created:   {self.groups_created}",
            f"  Byes:             {self.byes}",
            f"  Finished dropped: {self.finished_discarded}",
            "  Timings: "
            f"schedule={self.timings['schedule']:.2f}s, "
            f"persist={self.timings['persist']:.2f}s, "
            f"total={self.timings['total']:.2f}s",
        ]
        return "\n".join(lines)

    @property
    def standings_stale(self) -> bool:
        """True when dropped finished matches still count in the standings."""
        return self.finished_discarded > 0


@dataclass
class PhaseProgress:
    """Match counts and lifecycle flags for one phase."""
    phase_id: int
    status: PhaseStatus
    total_matches: int
    scheduled_matches: int
    live_matches: int
    finished_matches: int
    completion_percentage: float
    can_be_started: bool
    can_be_completed: bool
    can_be_cancelled: bool
    should_auto_complete: bool

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def validate_phase_configuration(
    phase_type: PhaseType,
    *,
    teams_advance: Optional[int] = None,
    groups_count: Optional[int] = None,
    teams_per_group: Optional[int] = None,
) -> None:
    """
    Reject phase settings no scheduler can honour.

    Raises:
        ConfigurationError: with the first problem found
    """
    if phase_type == PhaseType.GROUPS:
        if groups_count is None or teams_per_group is None:
            raise ConfigurationError(
                "Groups phases require groups_count and teams_per_group"
            )
        if groups_count < 1:
            raise ConfigurationError(f"groups_count must be >= 1, got {groups_count}")
        if teams_per_group < 2:
            raise ConfigurationError(f"teams_per_group must be >= 2, got {teams_per_group}")
    if phase_type == PhaseType.SINGLE_ELIMINATION and teams_advance is not None:
        if teams_advance < 2:
            raise ConfigurationError(
                f"Single-elimination phases need teams_advance >= 2, got {teams_advance}"
            )


def phase_type_catalog() -> dict[str, Any]:
    """Static description of the phase types and the status flow."""
    return {
        "types": [
            {
                "value": PhaseType.ROUND_ROBIN.value,
                "label": "Round robin",
                "description": "Every team plays every other team; repeated per tournament round",
                "requires": [],
            },
            {
                "value": PhaseType.SINGLE_ELIMINATION.value,
                "label": "Single elimination",
                "description": "Seeded knockout bracket; losers are eliminated",
                "requires": [],
                "optional": ["teams_advance"],
            },
            {
                "value": PhaseType.GROUPS.value,
                "label": "Groups",
                "description": "Teams split into groups playing a round robin within each group",
                "requires": ["groups_count", "teams_per_group"],
            },
        ],
        "statuses": [status.value for status in PhaseStatus],
        "transitions": {
            status.value: [target.value for target in allowed_transitions(status)]
            for status in PhaseStatus
        },
    }


class PhaseEngine:
    """
    Phase lifecycle transitions, fixture generation and progress reporting.

    Args:
        store: Entity store the engine reads and writes through
        settings: Defaults for unset phase fields (bracket size, groups)
    """

    def __init__(self, store: EntityStore, settings: Optional[Settings] = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    @classmethod
    def from_session(cls, session: Session) -> "PhaseEngine":
        return cls(SqlAlchemyStore(session))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def transition(self, phase_id: int, requested: PhaseStatus | str) -> Phase:
        """
        Move a phase to ``requested`` if the whitelist allows it.

        Raises:
            InvalidTransitionError: phase left unchanged
            ValueError: ``requested`` is not a phase status
        """
        target = parse_phase_status(requested)
        phase = self.store.get_phase(phase_id)
        current = phase.status
        if not can_transition(current, target):
            raise InvalidTransitionError(current.value, target.value)

        phase.status = target
        self.store.session.flush()
        logger.info("Phase %s: %s -> %s", phase_id, current.value, target.value)
        return phase

    def start_phase(self, phase_id: int) -> Phase:
        return self.transition(phase_id, PhaseStatus.ACTIVE)

    def complete_phase(self, phase_id: int) -> Phase:
        return self.transition(phase_id, PhaseStatus.COMPLETED)

    def cancel_phase(self, phase_id: int) -> Phase:
        return self.transition(phase_id, PhaseStatus.CANCELLED)

    def create_phase(
        self,
        tournament_id: int,
        name: str,
        phase_type: PhaseType | str,
        *,
        home_away: bool = False,
        teams_advance: Optional[int] = None,
        groups_count: Optional[int] = None,
        teams_per_group: Optional[int] = None,
    ) -> Phase:
        """Create a pending phase numbered after the tournament's last one."""
        try:
            parsed_type = parse_phase_type(phase_type)
        except ValueError:
            raise UnsupportedPhaseTypeError(phase_type) from None
        validate_phase_configuration(
            parsed_type,
            teams_advance=teams_advance,
            groups_count=groups_count,
            teams_per_group=teams_per_group,
        )
        self.store.get_tournament(tournament_id)

        phase = self.store.create_phase(
            tournament_id=tournament_id,
            phase_number=self.store.next_phase_number(tournament_id),
            name=name,
            type=parsed_type,
            home_away=home_away,
            teams_advance=teams_advance,
            groups_count=groups_count,
            teams_per_group=teams_per_group,
        )
        logger.info(
            "Created phase %s (#%d, %s) for tournament %s",
            phase.id, phase.phase_number, parsed_type.value, tournament_id,
        )
        return phase

    def delete_phase(self, phase_id: int) -> None:
        """Delete a phase with its matches and groups."""
        phase = self.store.get_phase(phase_id)
        self.store.delete_phase(phase)
        logger.info("Deleted phase %s", phase_id)

    # ------------------------------------------------------------------
    # Fixture generation
    # ------------------------------------------------------------------

    def generate_fixtures(self, tournament_id: int, phase_id: int) -> FixtureGenerationResult:
        """
        Replace the phase's fixtures with a freshly generated schedule.

        Raises:
            EntityNotFoundError: tournament or phase missing, or the phase
                belongs to another tournament
            ConfigurationError: fewer than two teams, or settings the
                scheduler rejects
            UnsupportedPhaseTypeError: no scheduler for ``phase.type``
        """
        start_total = time.monotonic()
        tournament = self.store.get_tournament(tournament_id)
        phase = self.store.get_phase(phase_id)
        if phase.tournament_id != tournament.id:
            raise EntityNotFoundError("Phase", phase_id)

        try:
            phase_type = parse_phase_type(phase.type)
        except ValueError:
            raise UnsupportedPhaseTypeError(phase.type) from None

        team_ids = [team.id for team in self.store.list_teams(tournament_id)]
        if len(team_ids) < 2:
            raise ConfigurationError(
                f"Tournament {tournament_id} needs at least 2 teams to generate fixtures, "
                f"has {len(team_ids)}"
            )

        result = FixtureGenerationResult(phase_id=phase.id, phase_type=phase_type)

        finished = self.store.count_phase_matches_by_status(phase.id)[MatchStatus.FINISHED]
        if finished:
            logger.warning(
                "Regenerating phase %s discards %d finished matches; "
                "recalculate standings afterwards",
                phase.id, finished,
            )
        result.finished_discarded = finished
        result.matches_deleted = self.store.delete_matches(phase.id)
        self.store.delete_groups(phase.id)

        if phase_type == PhaseType.ROUND_ROBIN:
            self._generate_round_robin(tournament, phase, team_ids, result)
        elif phase_type == PhaseType.SINGLE_ELIMINATION:
            self._generate_single_elimination(tournament, phase, team_ids, result)
        elif phase_type == PhaseType.GROUPS:
            self._generate_groups(tournament, phase, team_ids, result)
        else:
            raise UnsupportedPhaseTypeError(phase_type)

        phase.fixtures_generated_at = datetime.utcnow()
        self.store.session.flush()

        result.timings["total"] = time.monotonic() - start_total
        logger.info(result.summary())
        return result

    def _generate_round_robin(
        self,
        tournament: Tournament,
        phase: Phase,
        team_ids: list[int],
        result: FixtureGenerationResult,
    ) -> None:
        start = time.monotonic()
        rounds = generate_round_robin_cycles(
            team_ids, home_away=phase.home_away, cycles=tournament.rounds or 1
        )
        result.timings["schedule"] = time.monotonic() - start

        start = time.monotonic()
        for round_number, pairs in enumerate(rounds, start=1):
            for home_id, away_id in pairs:
                self.store.create_match(
                    MatchRecord(
                        tournament_id=tournament.id,
                        phase_id=phase.id,
                        round=round_number,
                        match_type=REGULAR_MATCH_TYPE,
                        home_team_id=home_id,
                        away_team_id=away_id,
                    )
                )
                result.matches_created += 1
        result.total_rounds = len(rounds)
        result.timings["persist"] = time.monotonic() - start

    def _generate_single_elimination(
        self,
        tournament: Tournament,
        phase: Phase,
        team_ids: list[int],
        result: FixtureGenerationResult,
    ) -> None:
        start = time.monotonic()
        bracket_size = phase.teams_advance or self.settings.default_bracket_size
        # Never size the bracket beyond the roster, so every round 1 tie
        # has at least one team
        bracket_size = min(bracket_size, len(team_ids))
        if len(team_ids) > bracket_size:
            logger.info(
                "Phase %s takes the first %d of %d teams into its bracket",
                phase.id, bracket_size, len(team_ids),
            )
        rounds = generate_single_elimination(bracket_size, home_away=phase.home_away)
        first_round_ties = len({fixture.position for fixture in rounds[0]})
        # Slots past the qualifying teams are byes, even when the roster is larger
        seeded = seed_bracket(rounds, team_ids[:bracket_size])
        result.byes = first_round_ties - len({fixture.position for fixture in seeded[0]})
        result.timings["schedule"] = time.monotonic() - start

        start = time.monotonic()
        for fixtures in seeded:
            for fixture in fixtures:
                self.store.create_match(
                    MatchRecord(
                        tournament_id=tournament.id,
                        phase_id=phase.id,
                        round=fixture.round,
                        match_type=fixture.match_type,
                        home_team_id=fixture.home_team_id,
                        away_team_id=fixture.away_team_id,
                        bracket_position=fixture.position,
                        leg=fixture.leg,
                        home_source=fixture.home.source,
                        away_source=fixture.away.source,
                    )
                )
                result.matches_created += 1
        result.total_rounds = len(seeded)
        result.timings["persist"] = time.monotonic() - start

    def _generate_groups(
        self,
        tournament: Tournament,
        phase: Phase,
        team_ids: list[int],
        result: FixtureGenerationResult,
    ) -> None:
        start = time.monotonic()
        groups = generate_groups(
            team_ids,
            groups_count=phase.groups_count or self.settings.default_groups_count,
            teams_per_group=phase.teams_per_group or self.settings.default_teams_per_group,
            home_away=phase.home_away,
        )
        result.timings["schedule"] = time.monotonic() - start

        start = time.monotonic()
        for group_fixtures in groups:
            group = self.store.create_group(
                tournament.id, phase.id, group_fixtures.group_number, group_fixtures.name
            )
            # Matches reference the group row by id
            self.store.session.flush()
            result.groups_created += 1

            for round_number, pairs in enumerate(group_fixtures.rounds, start=1):
                for home_id, away_id in pairs:
                    self.store.create_match(
                        MatchRecord(
                            tournament_id=tournament.id,
                            phase_id=phase.id,
                            round=round_number,
                            match_type=GROUP_MATCH_TYPE,
                            home_team_id=home_id,
                            away_team_id=away_id,
                            group_number=group_fixtures.group_number,
                            group_id=group.id,
                        )
                    )
                    result.matches_created += 1
            result.total_rounds = max(result.total_rounds, len(group_fixtures.rounds))
        result.timings["persist"] = time.monotonic() - start

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def get_progress(self, phase_id: int) -> PhaseProgress:
        phase = self.store.get_phase(phase_id)
        counts = self.store.count_phase_matches_by_status(phase.id)
        total = sum(counts.values())
        finished = counts[MatchStatus.FINISHED]
        percentage = (finished / total * 100) if total else 0.0

        return PhaseProgress(
            phase_id=phase.id,
            status=phase.status,
            total_matches=total,
            scheduled_matches=counts[MatchStatus.SCHEDULED],
            live_matches=counts[MatchStatus.LIVE],
            finished_matches=finished,
            completion_percentage=percentage,
            can_be_started=can_transition(phase.status, PhaseStatus.ACTIVE),
            can_be_completed=can_transition(phase.status, PhaseStatus.COMPLETED),
            can_be_cancelled=can_transition(phase.status, PhaseStatus.CANCELLED),
            should_auto_complete=self._should_auto_complete(phase.status, total, finished),
        )

    get_phase_progress = get_progress

    def should_auto_complete(self, phase_id: int) -> bool:
        """
        True when an active phase has matches and all of them are finished.

        Advisory only: the engine never completes a phase on its own.
        """
        phase = self.store.get_phase(phase_id)
        counts = self.store.count_phase_matches_by_status(phase.id)
        return self._should_auto_complete(
            phase.status, sum(counts.values()), counts[MatchStatus.FINISHED]
        )

    @staticmethod
    def _should_auto_complete(status: PhaseStatus, total: int, finished: int) -> bool:
        return status == PhaseStatus.ACTIVE and total > 0 and finished == total
