# Overview: Unit-of-work and row-locking helpers shared by every write path.

from __future__ import annotations

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyConflict
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the whole unit of work
    holds the database write lock instead (see run_in_transaction).
    """
    return query.with_for_update()


def _begin_write() -> None:
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_in_transaction(func):
    """
    Run func as one atomic unit of work and commit it.

    - On SQLite the transaction takes the write lock up front (BEGIN IMMEDIATE)
      so a check-then-write sequence cannot interleave with another writer.
    - Any exception rolls the whole unit back.
    - Storage serialization failures (lock timeouts, deadlocks, stale
      optimistic versions, a concurrent first insert of the same row) are
      surfaced as ConcurrencyConflict. There is no automatic retry: the caller
      decides whether to resubmit.
    """
    try:
        _begin_write()
        result = func()
        db.session.commit()
        return result
    except (OperationalError, StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        current_app.logger.warning("Unit of work aborted by storage conflict: %s", exc)
        raise ConcurrencyConflict(details={"cause": type(exc).__name__}) from exc
    except Exception:
        db.session.rollback()
        raise
