"""Services that update matches and the state derived from them."""

from fixtura.services.results import (
    ResultOutcome,
    finish_match,
    propagate_tie_result,
    recalculate_standings,
    record_match_result,
    start_match,
)

__all__ = [
    "ResultOutcome",
    "finish_match",
    "propagate_tie_result",
    "recalculate_standings",
    "record_match_result",
    "start_match",
]
