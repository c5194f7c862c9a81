# backend/colporter/reconciliation.py
"""
Inventory reconciliation core.

Pure functions shared by the backend services and the dashboard client:
- system count derivation from approved deliveries
- count status and discrepancy evaluation
- sheet rows (persisted record vs. derived placeholder)
- summary totals for the reconciliation page

Works on any objects exposing the attribute names used below, so ORM models
and client-side records go through the same code.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Union


# Count status constants
COUNT_STATUS_PENDING = "PENDING"
COUNT_STATUS_VERIFIED = "VERIFIED"
COUNT_STATUS_DISCREPANCY = "DISCREPANCY"

# Transaction status constants
TXN_STATUS_PENDING = "PENDING"
TXN_STATUS_APPROVED = "APPROVED"
TXN_STATUS_REJECTED = "REJECTED"


def delivered_quantity(transactions: Iterable, book_id: int) -> int:
    """Sum of line quantities for book_id across APPROVED transactions."""
    total = 0
    for txn in transactions:
        if txn.status != TXN_STATUS_APPROVED:
            continue
        for line in txn.lines:
            if line.book_id == book_id:
                total += line.quantity
    return total


def derive_system_count(initial_stock: int, transactions: Iterable, book_id: int) -> int:
    """
    Expected remaining stock for a book.

    system_count = max(0, initial_stock - delivered). Oversold data is clamped
    to zero rather than propagated as a negative count.
    """
    return max(0, initial_stock - delivered_quantity(transactions, book_id))


def baseline_on(book, count_date: date) -> tuple[int, date | None]:
    """
    Opening stock and baseline date in effect on count_date.

    Each confirmed count remembers the baseline it replaced
    (previous_initial_stock, previous_baseline_date). For a date before a
    later confirmation, the earliest such confirmation dated after count_date
    holds the baseline that applied; otherwise the book's current one does.
    """
    for entry in sorted(getattr(book, "baselines", None) or (), key=lambda b: b.count_date):
        if entry.count_date > count_date:
            return entry.previous_initial_stock, entry.previous_baseline_date
    return book.initial_stock, getattr(book, "baseline_date", None)


def deliveries_for(book, transactions: Iterable, count_date: date) -> list:
    """
    Approved transactions that count against the baseline in effect on count_date.

    Includes transactions dated on or before count_date and strictly after
    that baseline's date (deliveries before a confirmed count are already
    reflected in it).
    """
    baseline = baseline_on(book, count_date)[1]
    selected = []
    for txn in transactions:
        if txn.status != TXN_STATUS_APPROVED:
            continue
        txn_date = txn.transaction_date
        if txn_date is not None and txn_date > count_date:
            continue
        if baseline is not None and txn_date is not None and txn_date <= baseline:
            continue
        selected.append(txn)
    return selected


def system_count_for(book, transactions: Iterable, count_date: date) -> int:
    opening = baseline_on(book, count_date)[0]
    return derive_system_count(opening, deliveries_for(book, transactions, count_date), book.id)


def compute_discrepancy(manual_count: int | None, system_count: int) -> int:
    if manual_count is None:
        return 0
    return manual_count - system_count


def evaluate_status(manual_count: int | None, system_count: int, confirmed: bool = False) -> str:
    """
    Status of a count record.

    PENDING without a manual count; VERIFIED when the counts match or the
    discrepancy was confirmed; DISCREPANCY otherwise.
    """
    if manual_count is None:
        return COUNT_STATUS_PENDING
    if confirmed or manual_count == system_count:
        return COUNT_STATUS_VERIFIED
    return COUNT_STATUS_DISCREPANCY


@dataclass(frozen=True)
class PersistedRow:
    """A sheet row backed by a stored inventory count record."""
    count: object

    persisted = True

    @property
    def id(self) -> int:
        return self.count.id

    @property
    def book_id(self) -> int:
        return self.count.book_id

    @property
    def count_date(self) -> date:
        return self.count.count_date

    @property
    def system_count(self) -> int:
        return self.count.system_count

    @property
    def manual_count(self) -> int | None:
        return self.count.manual_count

    @property
    def discrepancy(self) -> int:
        return self.count.discrepancy

    @property
    def status(self) -> str:
        return self.count.status or evaluate_status(
            self.count.manual_count, self.count.system_count, getattr(self.count, "confirmed", False)
        )

    @property
    def key(self) -> tuple[int, date]:
        return (self.book_id, self.count_date)


@dataclass(frozen=True)
class DerivedRow:
    """
    A sheet row computed locally for a book with no stored count yet.

    It has no id and is never sent to the backend as-is.
    """
    book_id: int
    count_date: date
    system_count: int

    persisted = False
    manual_count = None
    discrepancy = 0
    status = COUNT_STATUS_PENDING

    @property
    def key(self) -> tuple[int, date]:
        return (self.book_id, self.count_date)


Row = Union[PersistedRow, DerivedRow]


def build_sheet(books: Iterable, counts: Iterable, transactions: Iterable, count_date: date) -> list[Row]:
    """
    One row per active book for count_date.

    Stored records win (their system_count is not recomputed); books without
    a record get a DerivedRow from the approved deliveries.
    """
    transactions = list(transactions)
    by_book = {c.book_id: c for c in counts if c.count_date == count_date}

    rows: list[Row] = []
    for book in books:
        if not book.is_active:
            continue
        existing = by_book.get(book.id)
        if existing is not None:
            rows.append(PersistedRow(existing))
        else:
            rows.append(DerivedRow(book.id, count_date, system_count_for(book, transactions, count_date)))
    return rows


@dataclass(frozen=True)
class ReconciliationSummary:
    total_books: int
    verified: int
    discrepancies: int
    total_lost_found: int

    def to_dict(self) -> dict:
        return {
            "total_books": self.total_books,
            "verified": self.verified,
            "discrepancies": self.discrepancies,
            "total_lost_found": self.total_lost_found,
        }


def summarize(rows: Iterable[Row]) -> ReconciliationSummary:
    rows = list(rows)
    return ReconciliationSummary(
        total_books=len(rows),
        verified=sum(1 for r in rows if r.status == COUNT_STATUS_VERIFIED),
        discrepancies=sum(1 for r in rows if r.status == COUNT_STATUS_DISCREPANCY),
        total_lost_found=sum(abs(r.discrepancy) for r in rows),
    )
