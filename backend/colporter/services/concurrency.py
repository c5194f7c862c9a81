# Overview: Row locking and retry for writes to books and inventory counts.

from __future__ import annotations

import time
from datetime import date

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Book, InventoryCount
from .program_service import require_book_in_program


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the rows a query returns.

    NOTE: SQLite ignores FOR UPDATE; there the version_id columns on Book,
    InventoryCount and Transaction catch concurrent writers instead.
    """
    return query.with_for_update()


def locked_book(book_id: int, program_id: int) -> Book:
    """
    Lock a book row of the program before changing its stock baseline.

    Raises BookNotFoundError if the book is missing or belongs to another program.
    """
    book = lock_for_update(
        db.session.query(Book).filter_by(id=book_id, program_id=program_id)
    ).first()
    if book is None:
        return require_book_in_program(book_id, program_id)
    return book


def locked_count(book_id: int, count_date: date) -> InventoryCount | None:
    """Lock the count record for (book, date), if one exists."""
    return lock_for_update(
        db.session.query(InventoryCount).filter_by(book_id=book_id, count_date=count_date)
    ).first()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a count, confirmation, adjustment or approval write, retrying on conflict.

    Two operators saving the same count row, or a confirmation racing an
    approval on the same book, surface as StaleDataError (version_id
    mismatch) or OperationalError (database lock). The session is rolled
    back and func runs again from scratch, so func must re-read every row
    it changes.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying after %s (attempt %d of %d)", type(exc).__name__, attempt + 1, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
