# Overview: Service-layer helpers for row locking and retrying conflicting writes.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


DEFAULT_RETRY_ON = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05, retry_on=DEFAULT_RETRY_ON):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts) by default. Callers whose check-then-insert
    is backed by a unique constraint pass IntegrityError in retry_on.
    The session is rolled back before every retry and before the final raise.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))


def is_unique_violation(exc: IntegrityError, constraint: str, *columns: str) -> bool:
    """
    Best-effort check of which unique constraint an IntegrityError tripped.

    PostgreSQL reports the constraint name; SQLite reports table.column.
    """
    message = str(exc.orig) if exc.orig is not None else str(exc)
    if constraint in message:
        return True
    return bool(columns) and all(col in message for col in columns)
