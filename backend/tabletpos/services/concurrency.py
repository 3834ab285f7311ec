# Overview: Row locking and retry helpers for the checkout and void transactions.

from __future__ import annotations

import time

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError


def lock_for_update(query):
    """
    Lock the selected product or sale rows until the transaction ends.

    SQLite ignores FOR UPDATE; there the conditional stock UPDATE and the
    version_id columns carry the guarantee.
    """
    return query.with_for_update()


def run_with_retry(session, func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back before every
    retry so each attempt starts from committed state.
    """
    if attempts is None:
        attempts = current_app.config.get("CHECKOUT_RETRY_ATTEMPTS", 3) if has_app_context() else 3

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            if has_app_context():
                current_app.logger.warning(
                    "Retrying after concurrency failure (attempt %s/%s): %s", attempt + 1, attempts, exc
                )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
