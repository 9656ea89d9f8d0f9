"""
Unit tests for per-tournament standings locks.

On SQLite the lock is process-local and lives until the holding session's
transaction ends, so a second session cannot touch standing rows the first
one has changed but not committed.
"""

import threading

import pytest
from sqlalchemy.orm import sessionmaker

from fixtura.db.store import SqlAlchemyStore
from fixtura.locks import _local_locks, advisory_lock_key, tournament_lock, tournament_lock_key
from fixtura.standings import StandingsEngine
from fixtura.statuses import MatchStatus


@pytest.fixture
def other_session(test_engine, tables):
    """A second session, independent of db_session."""
    session = sessionmaker(bind=test_engine, autoflush=False)()
    yield session
    session.close()


def test_advisory_lock_key_is_stable_signed_64bit():
    key = advisory_lock_key("fixtura:standings:1")

    assert key == advisory_lock_key("fixtura:standings:1")
    assert -(2 ** 63) <= key < 2 ** 63
    assert key != advisory_lock_key("fixtura:standings:2")


def test_tournament_keys_differ():
    assert tournament_lock_key(1) != tournament_lock_key(2)


def test_lock_reentrant_within_session(db_session):
    with tournament_lock(db_session, 1, timeout_seconds=0.1) as outer:
        with tournament_lock(db_session, 1, timeout_seconds=0.1) as inner:
            assert outer and inner
    with tournament_lock(db_session, 1, timeout_seconds=0.1):
        pass


def test_lock_held_until_rollback(db_session, other_session):
    with tournament_lock(db_session, 91, timeout_seconds=0.1):
        pass

    # Context exited but db_session's transaction is still open
    with pytest.raises(TimeoutError):
        with tournament_lock(other_session, 91, timeout_seconds=0.05):
            pass

    db_session.close()

    with tournament_lock(other_session, 91, timeout_seconds=0.05):
        pass


def test_lock_released_on_commit(test_engine, tables, other_session):
    session = sessionmaker(bind=test_engine, autoflush=False)()
    try:
        with tournament_lock(session, 92, timeout_seconds=0.1):
            pass
        session.commit()

        with tournament_lock(other_session, 92, timeout_seconds=0.05):
            pass
    finally:
        session.close()


def test_other_tournaments_unaffected(db_session, other_session):
    with tournament_lock(db_session, 94, timeout_seconds=0.1):
        with tournament_lock(other_session, 95, timeout_seconds=0.05):
            pass


def test_released_locks_are_forgotten(test_engine, tables):
    session = sessionmaker(bind=test_engine, autoflush=False)()
    with tournament_lock(session, 96, timeout_seconds=0.1):
        assert 96 in _local_locks
    session.close()

    assert 96 not in _local_locks


def test_waiting_writer_proceeds_after_commit(test_engine, tables):
    holder_session = sessionmaker(bind=test_engine, autoflush=False)()
    acquired = threading.Event()
    release = threading.Event()
    errors = []

    def holder():
        try:
            with tournament_lock(holder_session, 97, timeout_seconds=1.0):
                acquired.set()
            release.wait(timeout=5)
            holder_session.commit()
        except Exception as exc:  # surfaced through errors below
            errors.append(exc)
        finally:
            holder_session.close()

    thread = threading.Thread(target=holder)
    thread.start()
    waiter_session = sessionmaker(bind=test_engine, autoflush=False)()
    try:
        assert acquired.wait(timeout=5)
        with pytest.raises(TimeoutError):
            with tournament_lock(waiter_session, 97, timeout_seconds=0.05):
                pass
        release.set()
        with tournament_lock(waiter_session, 97, timeout_seconds=5.0):
            pass
    finally:
        release.set()
        thread.join()
        waiter_session.close()

    assert errors == []


def test_standings_writer_blocks_second_session(
    db_session, other_session, phase_engine, store, make_tournament, make_phase
):
    tournament, _ = make_tournament(["A", "B"])
    phase = make_phase(tournament)
    phase_engine.generate_fixtures(tournament.id, phase.id)
    (match,) = store.list_phase_matches(phase.id)
    match.home_score, match.away_score = 2, 1
    match.status = MatchStatus.FINISHED
    db_session.flush()

    StandingsEngine(store).apply_finished_match(match)

    # The uncommitted rows of db_session stay guarded after the apply returns
    second_writer = StandingsEngine(SqlAlchemyStore(other_session), lock_timeout_seconds=0.05)
    with pytest.raises(TimeoutError):
        second_writer.recalculate(tournament.id)
