"""Exceptions raised by the Fixtura engines.

Persistence errors are not wrapped: SQLAlchemy exceptions propagate to the
caller unchanged, and the caller owns the transaction rollback.
"""


class FixturaError(Exception):
    """Base exception for all Fixtura errors."""


class ConfigurationError(FixturaError):
    """Raised when a phase or tournament cannot be scheduled as configured.

    Typical causes: fewer than two teams, too few teams for the requested
    number of groups, or an invalid bracket size.
    """


class InvalidTransitionError(FixturaError):
    """Raised when a phase status change is not in the transition whitelist."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition from '{current}' to '{requested}'")


class UnsupportedPhaseTypeError(FixturaError):
    """Raised when a phase has a type no scheduler handles."""

    def __init__(self, phase_type: object) -> None:
        self.phase_type = phase_type
        super().__init__(f"Unsupported phase type: {phase_type}")


class EntityNotFoundError(FixturaError):
    """Raised when a referenced tournament, phase or match does not exist."""

    def __init__(self, kind: str, entity_id: object) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} not found")


class MatchNotReadyError(FixturaError):
    """Raised when a bracket match is played before both teams are known."""
