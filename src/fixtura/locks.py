"""Per-tournament locks serializing standings mutations."""

from __future__ import annotations

import hashlib
import logging
import threading
import time
import weakref
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import event, text
from sqlalchemy.orm import Session, SessionTransaction

logger = logging.getLogger(__name__)

# Locks stay registered only while some session holds or waits on them
_local_locks: weakref.WeakValueDictionary[int, threading.Lock] = weakref.WeakValueDictionary()
_registry_lock = threading.Lock()

# session.info key: tournament id -> local lock held by that session
_HELD_LOCKS_KEY = "fixtura.standings_locks"


def advisory_lock_key(name: str) -> int:
    """Return a deterministic signed 64-bit lock key from a lock name."""
    digest = hashlib.sha256(name.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=True)


def tournament_lock_key(tournament_id: int) -> int:
    return advisory_lock_key(f"fixtura:standings:{tournament_id}")


def _local_lock(tournament_id: int) -> threading.Lock:
    with _registry_lock:
        lock = _local_locks.get(tournament_id)
        if lock is None:
            lock = threading.Lock()
            _local_locks[tournament_id] = lock
        return lock


def _is_postgres(session: Session) -> bool:
    bind = session.get_bind()
    return bind.dialect.name == "postgresql"


@event.listens_for(Session, "after_transaction_end")
def _release_local_locks(session: Session, transaction: SessionTransaction) -> None:
    # Savepoints end inside the outer transaction; only the root releases
    if transaction.parent is not None:
        return
    held = session.info.pop(_HELD_LOCKS_KEY, None)
    if not held:
        return
    for tournament_id, lock in held.items():
        lock.release()
        logger.debug("Released standings lock (tournament %s)", tournament_id)


@contextmanager
def tournament_lock(
    session: Session,
    tournament_id: int,
    *,
    timeout_seconds: float = 10.0,
    poll_interval_seconds: float = 0.1,
) -> Generator[bool, None, None]:
    """
    Take the standings lock of one tournament for the session's transaction.

    The lock is released when the surrounding transaction commits or rolls
    back, not when the context exits, so a second writer cannot read
    standing rows this transaction has changed but not yet committed.

    On PostgreSQL this is a transaction-scoped advisory lock
    (pg_try_advisory_xact_lock). On other backends it is a process-local
    lock recorded on the session and released by an
    ``after_transaction_end`` hook. Re-entering for a tournament the
    session already holds returns at once.

    Yields:
        True once the lock is held.

    Raises:
        TimeoutError: if the lock cannot be acquired before timeout.
    """
    if _is_postgres(session):
        key = tournament_lock_key(tournament_id)
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while True:
            acquired = bool(
                session.execute(
                    text("SELECT pg_try_advisory_xact_lock(:key)"),
                    {"key": key},
                ).scalar()
            )
            if acquired:
                break
            if time.monotonic() >= deadline:
                raise TimeoutError(
                    f"Could not acquire standings lock for tournament {tournament_id}"
                )
            time.sleep(max(poll_interval_seconds, 0.05))
        logger.debug("Acquired advisory lock key=%s (tournament %s)", key, tournament_id)
        yield True
        return

    held = session.info.get(_HELD_LOCKS_KEY)
    if held and tournament_id in held:
        yield True
        return

    # Begin the transaction whose end releases the lock
    session.connection()
    lock = _local_lock(tournament_id)
    if not lock.acquire(timeout=max(timeout_seconds, 0.0)):
        raise TimeoutError(
            f"Could not acquire standings lock for tournament {tournament_id}"
        )
    session.info.setdefault(_HELD_LOCKS_KEY, {})[tournament_id] = lock
    logger.debug("Acquired local standings lock (tournament %s)", tournament_id)
    yield True
