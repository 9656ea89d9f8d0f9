"""
Database module for Fixtura.

Provides SQLAlchemy ORM models, session management and the entity store
the engines are built on.

Usage:
    from fixtura.db import get_session, SqlAlchemyStore

    with get_session() as session:
        store = SqlAlchemyStore(session)
        teams = store.list_teams(tournament_id)
"""

from fixtura.db.models import (
    Base,
    Group,
    Match,
    Phase,
    Standing,
    Team,
    Tournament,
    TournamentTeam,
)
from fixtura.db.session import SessionLocal, get_engine, get_session
from fixtura.db.store import EntityStore, MatchRecord, SqlAlchemyStore

__all__ = [
    # Base
    "Base",
    # Models
    "Group",
    "Match",
    "Phase",
    "Standing",
    "Team",
    "Tournament",
    "TournamentTeam",
    # Session
    "SessionLocal",
    "get_engine",
    "get_session",
    # Store
    "EntityStore",
    "MatchRecord",
    "SqlAlchemyStore",
]
