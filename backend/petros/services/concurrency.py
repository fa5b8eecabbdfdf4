# Overview: Atomic execution helpers shared by every ledger-changing service.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the write lock comes
    from BEGIN IMMEDIATE in run_atomic.
    """
    return query.with_for_update()


def _begin_immediate() -> None:
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.driver_connection
    # A pending write already holds the reserved lock
    if not raw.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_atomic(func, *, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Run `func` as one all-or-nothing transaction and commit it.

    Any exception rolls back every write made by `func` and propagates.
    OperationalError (lock timeouts, deadlocks) and StaleDataError (version
    conflicts on Item/Customer/Supplier/CashRegister) are retried with
    exponential backoff; nothing else is.
    """
    if attempts is None:
        attempts = int(current_app.config.get("ATOMIC_RETRY_ATTEMPTS", 3))
    attempts = max(attempts, 1)

    for attempt in range(attempts):
        try:
            _begin_immediate()
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Atomic procedure conflict (%s), retrying %d/%d",
                exc.__class__.__name__, attempt + 1, attempts - 1,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
