"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fixtura.config import Settings
from fixtura.db.models import Base, Phase, Team, Tournament, TournamentTeam
from fixtura.db.store import SqlAlchemyStore
from fixtura.phases import PhaseEngine
from fixtura.standings import StandingsEngine
from fixtura.statuses import PhaseType


@pytest.fixture(scope="session")
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory for fast tests that don't need
    PostgreSQL-specific features.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
    )
    return engine


@pytest.fixture(scope="session")
def tables(test_engine):
    """
    Create all tables for testing.

    This fixture runs once per test session.
    """
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def db_session(test_engine, tables):
    """
    Create a database session for a test.

    Each test gets its own session with automatic rollback,
    ensuring tests don't affect each other. Autoflush is off, as in
    fixtura.db.SessionLocal.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    Session = sessionmaker(bind=connection, autoflush=False, expire_on_commit=False)
    session = Session()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def test_settings():
    """Settings with the default points system and phase defaults."""
    return Settings(database_url="sqlite:///:memory:")


@pytest.fixture
def store(db_session):
    return SqlAlchemyStore(db_session)


@pytest.fixture
def phase_engine(store, test_settings):
    return PhaseEngine(store, test_settings)


@pytest.fixture
def standings_engine(store, test_settings):
    return StandingsEngine(store, settings=test_settings)


@pytest.fixture
def make_tournament(db_session):
    """
    Factory creating a tournament with registered teams.

    Teams are registered one second apart, so fixture-generation order is
    the order of ``team_names``.

    Usage:
        tournament, teams = make_tournament(["A", "B", "C", "D"])
    """

    def _make(team_names, name="Test Cup", rounds=1):
        tournament = Tournament(name=name, rounds=rounds)
        db_session.add(tournament)
        db_session.flush()

        base = datetime(2026, 1, 1, 12, 0, 0)
        teams = []
        for index, team_name in enumerate(team_names):
            team = Team(name=team_name)
            db_session.add(team)
            db_session.flush()
            db_session.add(
                TournamentTeam(
                    tournament_id=tournament.id,
                    team_id=team.id,
                    joined_at=base + timedelta(seconds=index),
                )
            )
            teams.append(team)
        db_session.flush()
        return tournament, teams

    return _make


@pytest.fixture
def make_phase(db_session):
    """Factory creating a pending phase for a tournament."""

    def _make(tournament, phase_type=PhaseType.ROUND_ROBIN, phase_number=1, **fields):
        phase = Phase(
            tournament_id=tournament.id,
            phase_number=phase_number,
            name=fields.pop("name", f"Phase {phase_number}"),
            type=phase_type,
            **fields,
        )
        db_session.add(phase)
        db_session.flush()
        return phase

    return _make
