"""Standings computed from finished matches."""

from fixtura.standings.engine import (
    PointsSystem,
    StandingsEngine,
    apply_result,
    match_outcomes,
)

__all__ = [
    "PointsSystem",
    "StandingsEngine",
    "apply_result",
    "match_outcomes",
]
