# backend/colporter/services/transaction_service.py
"""
Sales transaction service.

LIFECYCLE:
1. PENDING: created by an operator
2. APPROVED: counted against stock (sold grows, stock is recalculated)
3. REJECTED: never affects stock

A transaction is decided exactly once; decided transactions are immutable.
"""
from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Book, Transaction, TransactionLine
from ..reconciliation import TXN_STATUS_APPROVED, TXN_STATUS_PENDING, TXN_STATUS_REJECTED
from .book_service import approved_transactions_for_books, recalculate_stock
from .concurrency import lock_for_update, run_with_retry
from colporter.time_utils import utcnow

TXN_STATUSES = (TXN_STATUS_PENDING, TXN_STATUS_APPROVED, TXN_STATUS_REJECTED)


class TransactionError(Exception):
    """Raised when transaction operations fail."""
    pass


class TransactionNotFoundError(TransactionError):
    pass


def create_transaction(
    program_id: int,
    user_id: int,
    transaction_date: date,
    lines: list[tuple[int, int]],
    note: str | None = None,
) -> Transaction:
    """
    Create a PENDING transaction.

    Args:
        lines: (book_id, quantity) pairs, already validated

    Raises:
        TransactionError: a book is unknown, inactive, or from another program
    """
    book_ids = {book_id for book_id, _ in lines}
    books = {
        b.id: b for b in db.session.query(Book).filter(
            Book.id.in_(book_ids), Book.program_id == program_id
        ).all()
    }
    for book_id in book_ids:
        book = books.get(book_id)
        if book is None:
            raise TransactionError(f"Book {book_id} not found")
        if not book.is_active:
            raise TransactionError(f"Book {book_id} is inactive")

    txn = Transaction(
        program_id=program_id,
        transaction_date=transaction_date,
        status=TXN_STATUS_PENDING,
        note=note,
        created_by_user_id=user_id,
    )
    for book_id, quantity in lines:
        txn.lines.append(TransactionLine(book_id=book_id, quantity=quantity))

    db.session.add(txn)
    db.session.commit()
    return txn


def list_transactions(
    program_id: int,
    status: str | None = None,
    on_date: date | None = None,
    until: date | None = None,
) -> list[Transaction]:
    """
    List transactions of a program.

    on_date matches one day exactly; until includes every day up to and
    including the given date.
    """
    if status is not None and status not in TXN_STATUSES:
        raise TransactionError(f"Invalid status: {status}")

    query = db.session.query(Transaction).filter(Transaction.program_id == program_id)
    if status:
        query = query.filter(Transaction.status == status)
    if on_date is not None:
        query = query.filter(Transaction.transaction_date == on_date)
    if until is not None:
        query = query.filter(Transaction.transaction_date <= until)
    return query.order_by(Transaction.transaction_date.desc(), Transaction.id.desc()).all()


def get_transaction(transaction_id: int, program_id: int) -> Transaction:
    txn = db.session.get(Transaction, transaction_id)
    if txn is None or txn.program_id != program_id:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
    return txn


def _decide(transaction_id: int, program_id: int, user_id: int, new_status: str) -> Transaction:
    txn = lock_for_update(
        db.session.query(Transaction).filter_by(id=transaction_id, program_id=program_id)
    ).first()
    if not txn:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

    if txn.status != TXN_STATUS_PENDING:
        raise TransactionError(f"Transaction {transaction_id} is already {txn.status}")

    txn.status = new_status
    txn.decided_by_user_id = user_id
    txn.decided_at = utcnow()
    return txn


def approve_transaction(transaction_id: int, program_id: int, user_id: int) -> Transaction:
    """
    Approve a PENDING transaction: grow each book's sold and recalculate stock.
    """
    def _op():
        txn = _decide(transaction_id, program_id, user_id, TXN_STATUS_APPROVED)
        db.session.flush()

        book_ids = {line.book_id for line in txn.lines}
        books = lock_for_update(
            db.session.query(Book).filter(Book.id.in_(book_ids))
        ).all()
        approved = approved_transactions_for_books(program_id, book_ids)

        quantities = {line.book_id: line.quantity for line in txn.lines}
        for book in books:
            book.sold = (book.sold or 0) + quantities[book.id]
            recalculate_stock(book, approved)

        db.session.commit()
        return txn

    return run_with_retry(_op)


def reject_transaction(transaction_id: int, program_id: int, user_id: int) -> Transaction:
    def _op():
        txn = _decide(transaction_id, program_id, user_id, TXN_STATUS_REJECTED)
        db.session.commit()
        return txn

    return run_with_retry(_op)
