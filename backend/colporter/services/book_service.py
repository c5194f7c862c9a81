# backend/colporter/services/book_service.py
"""
Book catalog service.

Stock bookkeeping lives here: recalculate_stock() is the single place that
derives Book.stock from the baseline and the approved deliveries, so the
transaction and count services never compute it themselves.
"""
from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Book, InventoryCount, InventoryMovement, Transaction, TransactionLine
from ..reconciliation import TXN_STATUS_APPROVED, deliveries_for, derive_system_count
from ..validation import ConflictError, ValidationError
from .concurrency import locked_book, run_with_retry
from .program_service import require_book_in_program
from colporter.time_utils import utcnow

BOOK_MUTABLE_FIELDS = {"isbn", "title", "author", "category", "size", "price_cents", "initial_stock", "is_active"}

MOVEMENT_TYPES = ("IN", "OUT")

# Legacy rows predating the size field were classified by price in some screens.
LEGACY_LARGE_PRICE_CENTS = 2000


def approved_transactions_for_books(program_id: int, book_ids: set[int]) -> list[Transaction]:
    if not book_ids:
        return []
    return (
        db.session.query(Transaction)
        .join(TransactionLine)
        .filter(
            Transaction.program_id == program_id,
            Transaction.status == TXN_STATUS_APPROVED,
            TransactionLine.book_id.in_(book_ids),
        )
        .distinct()
        .all()
    )


def recalculate_stock(book: Book, transactions: list | None = None) -> int:
    """
    Set book.stock from its baseline and every approved delivery after it.

    Does not commit. Returns the new stock.
    """
    if transactions is None:
        transactions = approved_transactions_for_books(book.program_id, {book.id})
    deliveries = deliveries_for(book, transactions, date.max)
    book.stock = derive_system_count(book.initial_stock, deliveries, book.id)
    return book.stock


def list_books(program_id: int, active: bool | None = None, category: str | None = None) -> list[Book]:
    query = db.session.query(Book).filter(Book.program_id == program_id)
    if active is not None:
        query = query.filter(Book.is_active == active)
    if category:
        query = query.filter(Book.category == category)
    return query.order_by(Book.title.asc(), Book.id.asc()).all()


def get_book(book_id: int, program_id: int) -> Book:
    return require_book_in_program(book_id, program_id)


def create_book(patch: dict, program_id: int) -> Book:
    book = Book(program_id=program_id)
    for k, v in patch.items():
        if k in BOOK_MUTABLE_FIELDS:
            setattr(book, k, v)
    book.sold = 0
    book.stock = book.initial_stock or 0
    db.session.add(book)
    db.session.commit()
    return book


def update_book(book_id: int, patch: dict, program_id: int) -> Book:
    book = require_book_in_program(book_id, program_id)
    for k, v in patch.items():
        if k in BOOK_MUTABLE_FIELDS:
            setattr(book, k, v)
    if "initial_stock" in patch:
        recalculate_stock(book)
    db.session.commit()
    return book


def toggle_book_status(book_id: int, program_id: int) -> Book:
    book = require_book_in_program(book_id, program_id)
    book.is_active = not book.is_active
    db.session.commit()
    return book


def delete_book(book_id: int, program_id: int) -> None:
    """
    Remove a book that has no history.

    Books referenced by transactions, counts or movements cannot be deleted;
    deactivate them instead.

    Raises:
        BookNotFoundError: book not in program
        ConflictError: the book has history
    """
    book = require_book_in_program(book_id, program_id)

    in_use = any(
        db.session.query(model.id).filter(model.book_id == book_id).first() is not None
        for model in (TransactionLine, InventoryCount, InventoryMovement)
    )
    if in_use:
        raise ConflictError(
            "Cannot delete a book that is used in transactions or counts. Deactivate it instead."
        )

    db.session.delete(book)
    db.session.commit()


def list_movements(book_id: int, program_id: int) -> list[InventoryMovement]:
    require_book_in_program(book_id, program_id)
    return (
        db.session.query(InventoryMovement)
        .filter(InventoryMovement.book_id == book_id)
        .order_by(InventoryMovement.movement_date.desc(), InventoryMovement.id.desc())
        .all()
    )


def create_movement(
    book_id: int,
    program_id: int,
    user_id: int,
    movement_type: str,
    quantity: int,
    note: str | None = None,
) -> tuple[InventoryMovement, Book]:
    """
    Record a manual IN/OUT stock adjustment.

    The adjustment moves the current baseline (initial_stock) by the
    quantity and stock is recalculated from it, so later approvals and
    derived system counts start from the adjusted value.

    Raises:
        ValidationError: unknown type, non-positive quantity, or OUT beyond stock
        BookNotFoundError: book not in program
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"movement_type must be one of: {', '.join(MOVEMENT_TYPES)}")
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")

    def _op():
        book = locked_book(book_id, program_id)

        current = recalculate_stock(book)
        if movement_type == "OUT" and quantity > current:
            raise ValidationError(f"Cannot remove {quantity} copies; only {current} in stock")

        book.initial_stock += quantity if movement_type == "IN" else -quantity
        recalculate_stock(book)

        movement = InventoryMovement(
            book_id=book.id,
            user_id=user_id,
            movement_type=movement_type,
            quantity=quantity,
            note=note,
            movement_date=utcnow(),
        )
        db.session.add(movement)
        db.session.commit()
        return movement, book

    return run_with_retry(_op)


def legacy_size_for(price_cents: int | None) -> str:
    return "LARGE" if (price_cents or 0) >= LEGACY_LARGE_PRICE_CENTS else "SMALL"


def backfill_legacy_sizes(program_id: int | None = None, *, dry_run: bool = False) -> list[tuple[int, str, str]]:
    """
    Classify books that have no size yet using the old price rule.

    One-off migration for legacy data: books priced at or above $20.00 become
    LARGE, the rest SMALL. Books that already have a size are left alone.

    Returns (book_id, title, size) for every book that was (or would be) set.
    """
    query = db.session.query(Book).filter(Book.size.is_(None))
    if program_id is not None:
        query = query.filter(Book.program_id == program_id)

    changed = []
    for book in query.order_by(Book.id.asc()).all():
        size = legacy_size_for(book.price_cents)
        changed.append((book.id, book.title, size))
        if not dry_run:
            book.size = size

    if not dry_run:
        db.session.commit()
    return changed
