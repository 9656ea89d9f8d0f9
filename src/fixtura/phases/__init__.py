"""Phase lifecycle, fixture generation and progress reporting."""

from fixtura.phases.engine import (
    FixtureGenerationResult,
    PhaseEngine,
    PhaseProgress,
    phase_type_catalog,
    validate_phase_configuration,
)

__all__ = [
    "FixtureGenerationResult",
    "PhaseEngine",
    "PhaseProgress",
    "phase_type_catalog",
    "validate_phase_configuration",
]
