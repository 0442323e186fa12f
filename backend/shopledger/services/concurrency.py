# Overview: Service-layer helpers for row locking and retrying contended writes.

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..validation import ConflictError


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_integrity_retry(func, *, label: str):
    """
    Run an insert-or-update once more if it loses a unique-constraint race.

    `func` must re-read current state on every call, so the second attempt
    finds the row the competing writer inserted and updates it instead.
    The retry is bounded to one; a second IntegrityError becomes a ConflictError.
    """
    try:
        return func()
    except IntegrityError:
        db.session.rollback()
        logger.warning("Unique constraint race on %s; retrying as update", label)

    try:
        return func()
    except IntegrityError:
        db.session.rollback()
        logger.error("Unique constraint race on %s lost twice", label)
        raise ConflictError("Concurrent update in progress, retry the request")
