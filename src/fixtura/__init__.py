"""
Fixtura - Football Tournament Engine

Fixture generation and standings computation for amateur football
tournaments.

Main components:
- scheduling: Round-robin, single-elimination and groups schedulers
- phases: Phase lifecycle and fixture generation orchestration
- standings: Incremental and full-rebuild standings tables
- services: Match result recording and bracket propagation
- db: SQLAlchemy models, sessions and the entity store
"""

__version__ = "1.0.0"
