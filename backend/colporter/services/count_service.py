# backend/colporter/services/count_service.py
"""
Inventory count (reconciliation) service.

Compares the system count (expected stock) with the manual count
(physical stock) per book and date. Saving a count never touches book
stock; a separate confirmation commits a discrepancy as the new baseline.

LIFECYCLE per (book, date):
1. PENDING: no manual count yet (the row is only derived, not stored)
2. VERIFIED: manual == system on save, or after confirmation (terminal)
3. DISCREPANCY: manual != system; may be re-saved or confirmed
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..extensions import db
from ..models import Book, InventoryCount, InventoryMovement, Transaction
from ..reconciliation import (
    COUNT_STATUS_DISCREPANCY,
    COUNT_STATUS_VERIFIED,
    TXN_STATUS_APPROVED,
    Row,
    ReconciliationSummary,
    build_sheet,
    compute_discrepancy,
    evaluate_status,
    summarize,
    system_count_for,
)
from ..validation import ConflictError, ValidationError
from .book_service import recalculate_stock
from .concurrency import locked_book, locked_count, run_with_retry
from .program_service import require_book_in_program
from colporter.time_utils import utcnow


@dataclass
class CountSheet:
    count_date: date
    books: list[Book]
    rows: list[Row]
    summary: ReconciliationSummary


def list_counts(program_id: int, count_date: date | None = None) -> list[InventoryCount]:
    """Stored count records of a program, optionally for one date only."""
    query = (
        db.session.query(InventoryCount)
        .join(Book, InventoryCount.book_id == Book.id)
        .filter(InventoryCount.program_id == program_id)
    )
    if count_date is not None:
        query = query.filter(InventoryCount.count_date == count_date)
    return query.order_by(InventoryCount.count_date.desc(), Book.title.asc()).all()


def _approved_until(program_id: int, count_date: date) -> list[Transaction]:
    return (
        db.session.query(Transaction)
        .filter(
            Transaction.program_id == program_id,
            Transaction.status == TXN_STATUS_APPROVED,
            Transaction.transaction_date <= count_date,
        )
        .all()
    )


def get_count_sheet(program_id: int, count_date: date) -> CountSheet:
    """
    Full reconciliation sheet for a date: one row per active book.

    Stored records are returned as they are; the rest are derived from the
    approved deliveries up to count_date.
    """
    books = (
        db.session.query(Book)
        .filter(Book.program_id == program_id, Book.is_active == True)  # noqa: E712
        .order_by(Book.title.asc(), Book.id.asc())
        .all()
    )
    rows = build_sheet(books, list_counts(program_id, count_date), _approved_until(program_id, count_date), count_date)
    return CountSheet(count_date=count_date, books=books, rows=rows, summary=summarize(rows))


def derive_system_count_for(book: Book, count_date: date) -> int:
    return system_count_for(book, _approved_until(book.program_id, count_date), count_date)


def record_manual_count(
    book_id: int,
    program_id: int,
    user_id: int,
    count_date: date,
    manual_count: int,
    system_count: int | None = None,
    set_verified: bool = False,
) -> InventoryCount:
    """
    Save a manual count without touching the book's stock.

    Args:
        system_count: the system count the operator saw when starting the
            edit. Used only when the record is created; an existing record
            keeps its stored value. Derived server-side when omitted.
        set_verified: the client's claim that the counts match. Rejected if
            they do not (only a confirmation may verify a discrepancy).

    Raises:
        ValidationError: negative manual count, or set_verified on differing counts
        ConflictError: the record was already confirmed
        BookNotFoundError: book not in program
    """
    if manual_count is None or manual_count < 0:
        raise ValidationError("manualCount must be a non-negative integer")
    if system_count is not None and system_count < 0:
        raise ValidationError("systemCount must be >= 0")

    def _op():
        book = require_book_in_program(book_id, program_id)

        record = locked_count(book_id, count_date)

        if record is not None and record.confirmed:
            raise ConflictError(
                f"Count for book {book_id} on {count_date.isoformat()} was already confirmed"
            )

        if record is None:
            snapshot = system_count if system_count is not None else derive_system_count_for(book, count_date)
            record = InventoryCount(
                program_id=program_id,
                book_id=book_id,
                count_date=count_date,
                system_count=snapshot,
                confirmed=False,
            )
            db.session.add(record)

        status = evaluate_status(manual_count, record.system_count)
        if set_verified and status != COUNT_STATUS_VERIFIED:
            raise ValidationError(
                "Cannot verify a count that differs from the system count without confirming the discrepancy"
            )

        record.manual_count = manual_count
        record.discrepancy = compute_discrepancy(manual_count, record.system_count)
        record.status = status
        record.updated_by_user_id = user_id

        db.session.commit()
        return record

    return run_with_retry(_op)


def confirm_discrepancy(
    book_id: int,
    program_id: int,
    user_id: int,
    count_date: date,
    manual_count: int,
) -> tuple[InventoryCount, Book]:
    """
    Commit a recorded discrepancy as the book's new stock baseline.

    The record keeps its original system_count so the size of the
    discrepancy remains visible afterwards. Writes an IN/OUT movement for
    the difference.

    Raises:
        ConflictError: no DISCREPANCY record, manual count changed since the
            save, or a later count already moved the baseline
        BookNotFoundError: book not in program
    """
    def _op():
        book = locked_book(book_id, program_id)

        record = locked_count(book_id, count_date)

        if record is None or record.status != COUNT_STATUS_DISCREPANCY or record.manual_count is None:
            raise ConflictError(
                f"No open discrepancy for book {book_id} on {count_date.isoformat()}"
            )

        if manual_count != record.manual_count:
            raise ConflictError(
                "Manual count differs from the saved count; save it again before confirming"
            )

        if book.baseline_date is not None and count_date < book.baseline_date:
            raise ConflictError(
                f"Stock was already reconciled on {book.baseline_date.isoformat()}"
            )

        now = utcnow()
        record.confirmed = True
        record.confirmed_by_user_id = user_id
        record.confirmed_at = now
        record.updated_by_user_id = user_id
        record.status = evaluate_status(record.manual_count, record.system_count, confirmed=True)

        record.previous_initial_stock = book.initial_stock
        record.previous_baseline_date = book.baseline_date
        book.initial_stock = record.manual_count
        book.baseline_date = count_date
        recalculate_stock(book)

        if record.discrepancy != 0:
            db.session.add(InventoryMovement(
                book_id=book.id,
                user_id=user_id,
                movement_type="IN" if record.discrepancy > 0 else "OUT",
                quantity=abs(record.discrepancy),
                note=f"Inventory adjustment from count on {count_date.isoformat()}",
                movement_date=now,
            ))

        db.session.commit()
        return record, book

    return run_with_retry(_op)
