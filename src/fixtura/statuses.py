"""Shared phase/match status definitions and helpers.

This module is the single source of truth for the closed sets of phase
types, phase statuses and match statuses, and for the phase transition
whitelist. Raw strings coming from callers are parsed here so unknown
values are rejected at the boundary instead of deep in the engines.
"""

from __future__ import annotations

from enum import Enum


class PhaseType(str, Enum):
    """Scheduling algorithm used by a phase."""

    ROUND_ROBIN = "round_robin"
    SINGLE_ELIMINATION = "single_elimination"
    GROUPS = "groups"


class PhaseStatus(str, Enum):
    """Phase lifecycle states."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MatchStatus(str, Enum):
    """Match lifecycle states."""

    SCHEDULED = "scheduled"
    LIVE = "live"
    FINISHED = "finished"


# Strict whitelist. Terminal states have no outgoing transitions.
PHASE_TRANSITIONS: dict[PhaseStatus, frozenset[PhaseStatus]] = {
    PhaseStatus.PENDING: frozenset({PhaseStatus.ACTIVE, PhaseStatus.CANCELLED}),
    PhaseStatus.ACTIVE: frozenset({PhaseStatus.COMPLETED, PhaseStatus.CANCELLED}),
    PhaseStatus.COMPLETED: frozenset(),
    PhaseStatus.CANCELLED: frozenset(),
}


def _parse(enum_cls, raw, label: str):
    if isinstance(raw, enum_cls):
        return raw
    if not isinstance(raw, str):
        raise ValueError(f"{label} must be a string, got {type(raw).__name__}")
    value = raw.strip().lower()
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"Unknown {label} '{raw}' (expected one of: {allowed})") from None


def parse_phase_type(raw: str | PhaseType) -> PhaseType:
    """Parse a phase type, raising ValueError for unknown values."""
    return _parse(PhaseType, raw, "phase type")


def parse_phase_status(raw: str | PhaseStatus) -> PhaseStatus:
    """Parse a phase status, raising ValueError for unknown values."""
    return _parse(PhaseStatus, raw, "phase status")


def parse_match_status(raw: str | MatchStatus) -> MatchStatus:
    """Parse a match status, raising ValueError for unknown values."""
    return _parse(MatchStatus, raw, "match status")


def can_transition(current: PhaseStatus, requested: PhaseStatus) -> bool:
    """Return True if ``current -> requested`` is in the whitelist."""
    return requested in PHASE_TRANSITIONS.get(current, frozenset())


def allowed_transitions(current: PhaseStatus) -> list[PhaseStatus]:
    """Return the statuses reachable from ``current`` in declaration order."""
    targets = PHASE_TRANSITIONS.get(current, frozenset())
    return [status for status in PhaseStatus if status in targets]
