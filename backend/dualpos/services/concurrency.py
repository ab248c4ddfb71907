# Overview: Transaction boundary and retry handling shared by every mutating service.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import StorageError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation as one unit of work.

    - Any exception rolls the session back, so a half-applied order never
      reaches the database.
    - OperationalError (deadlocks, locks) and StaleDataError (optimistic
      locking conflicts) are retried with exponential backoff.
    - Any other SQLAlchemyError, or a retryable one that survives all
      attempts, surfaces as StorageError.
    - Domain errors (ValidationError, NotFoundError) propagate unchanged.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise StorageError(str(exc)) from exc
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(str(exc)) from exc
        except Exception:
            db.session.rollback()
            raise
