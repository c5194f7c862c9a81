# backend/colporter/client/store.py
"""
Client-side inventory state for the reconciliation page.

STATE MODEL:
- StoreState is an immutable snapshot; every successful request produces a
  new snapshot that replaces the old one in a single assignment.
- Nothing is updated optimistically: a failed save or confirm leaves the
  snapshot exactly as it was.
- Rows with a request in flight are tracked per (book_id, count_date); a
  second save/confirm for the same row is refused with RowBusyError.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterator, Optional

from ..reconciliation import (
    COUNT_STATUS_DISCREPANCY,
    TXN_STATUS_APPROVED,
    Row,
    ReconciliationSummary,
    build_sheet,
    summarize,
)
from .api import ApiClient, ApiError
from .records import Book, InventoryCount, Transaction

logger = logging.getLogger(__name__)


class ReconciliationError(Exception):
    """A save or confirm that was refused before any request was sent."""
    pass


class RowBusyError(ReconciliationError):
    """A request for the same row is still in flight."""
    pass


@dataclass(frozen=True)
class StoreState:
    books: tuple[Book, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    counts: tuple[InventoryCount, ...] = ()
    is_loading: bool = False
    error: Optional[str] = None


def _merge_count(counts: tuple[InventoryCount, ...], record: InventoryCount) -> tuple[InventoryCount, ...]:
    """Replace the record with the same (book_id, count_date), or append it."""
    merged = []
    replaced = False
    for existing in counts:
        if existing.key == record.key:
            merged.append(record)
            replaced = True
        else:
            merged.append(existing)
    if not replaced:
        merged.append(record)
    return tuple(merged)


def _merge_book(books: tuple[Book, ...], book: Book) -> tuple[Book, ...]:
    return tuple(book if b.id == book.id else b for b in books)


class InventoryStore:
    """Books, approved transactions and counts as last returned by the backend."""

    def __init__(self, api: ApiClient):
        self.api = api
        self._state = StoreState()
        self._lock = threading.Lock()
        self._in_flight: set[tuple[int, date]] = set()

    # -------------------------------------------------------------------------
    # Snapshot access
    # -------------------------------------------------------------------------

    @property
    def state(self) -> StoreState:
        return self._state

    def _swap(self, **changes) -> StoreState:
        with self._lock:
            self._state = replace(self._state, **changes)
            return self._state

    def book(self, book_id: int) -> Optional[Book]:
        for book in self._state.books:
            if book.id == book_id:
                return book
        return None

    def count_for(self, book_id: int, count_date: date) -> Optional[InventoryCount]:
        for count in self._state.counts:
            if count.book_id == book_id and count.count_date == count_date:
                return count
        return None

    def rows(self, count_date: date) -> list[Row]:
        state = self._state
        return build_sheet(state.books, state.counts, state.transactions, count_date)

    def summary(self, count_date: date) -> ReconciliationSummary:
        return summarize(self.rows(count_date))

    def is_row_busy(self, book_id: int, count_date: date) -> bool:
        return (book_id, count_date) in self._in_flight

    @contextmanager
    def _row_request(self, book_id: int, count_date: date) -> Iterator[None]:
        key = (book_id, count_date)
        with self._lock:
            if key in self._in_flight:
                raise RowBusyError(f"A request for book {book_id} on {count_date.isoformat()} is already in progress")
            self._in_flight.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)

    def _program_params(self) -> dict:
        if self.api.program_id is None:
            return {}
        return {"programId": self.api.program_id}

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    def fetch_books(self) -> tuple[Book, ...]:
        try:
            data = self.api.get("/api/books", params=self._program_params())
        except ApiError as e:
            self._swap(error=e.message)
            raise
        books = tuple(Book.from_dict(b) for b in data)
        self._swap(books=books)
        return books

    def fetch_transactions(self, until: date) -> tuple[Transaction, ...]:
        """Approved transactions dated on or before until."""
        try:
            data = self.api.get(
                "/api/transactions",
                params={"status": TXN_STATUS_APPROVED, "until": until.isoformat()},
            )
        except ApiError as e:
            self._swap(error=e.message)
            raise
        transactions = tuple(Transaction.from_dict(t) for t in data)
        self._swap(transactions=transactions)
        return transactions

    def _get_counts(self, count_date: date) -> tuple[InventoryCount, ...]:
        data = self.api.get(f"/api/books/counts/{count_date.isoformat()}", params=self._program_params())
        return tuple(InventoryCount.from_dict(c) for c in data)

    def fetch_inventory_counts(self, count_date: date) -> tuple[InventoryCount, ...]:
        try:
            counts = self._get_counts(count_date)
        except ApiError as e:
            self._swap(error=e.message)
            raise
        self._swap(counts=counts)
        return counts

    def load(self, count_date: date) -> bool:
        """
        Fetch everything the page needs for count_date.

        Returns False (with state.error set) if any fetch failed.
        """
        self._swap(is_loading=True, error=None)
        try:
            self.fetch_books()
            self.fetch_transactions(count_date)
            self.fetch_inventory_counts(count_date)
        except ApiError as e:
            logger.warning("Failed to load inventory for %s: %s", count_date.isoformat(), e.message)
            return False
        finally:
            self._swap(is_loading=False)
        return True

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def save_manual_count(
        self,
        book_id: int,
        count_date: date,
        manual_value: int,
        system_count: int,
    ) -> InventoryCount:
        """
        Save a manual count for one book and date.

        system_count is the value the operator saw when the edit started.
        Raises ReconciliationError for invalid input, ApiError on failure.
        """
        if isinstance(manual_value, bool) or not isinstance(manual_value, int) or manual_value < 0:
            raise ReconciliationError("Manual count must be a whole number of 0 or more")

        with self._row_request(book_id, count_date):
            body = {
                "manualCount": manual_value,
                "countDate": count_date.isoformat(),
                "systemCount": system_count,
                "confirmDiscrepancy": False,
                "setVerified": manual_value == system_count,
            }
            body.update(self._program_params())
            data = self.api.post(f"/api/books/{book_id}/counts", json=body)

            record = InventoryCount.from_dict(data["count"])
            with self._lock:
                self._state = replace(self._state, counts=_merge_count(self._state.counts, record))
            logger.info("Saved count for book %s on %s: %s", book_id, count_date.isoformat(), record.status)
            return record

    def confirm_discrepancy(self, book_id: int, count_date: date) -> tuple[InventoryCount, Book]:
        """
        Commit a recorded discrepancy as the book's new stock.

        Sends the stored manual count with the original system count. The
        updated count and book replace the cached ones in one swap, then the
        counts for the date are fetched again.
        """
        existing = self.count_for(book_id, count_date)
        if existing is None or existing.status != COUNT_STATUS_DISCREPANCY or existing.manual_count is None:
            raise ReconciliationError("Only a saved discrepancy can be confirmed")

        with self._row_request(book_id, count_date):
            body = {
                "manualCount": existing.manual_count,
                "countDate": count_date.isoformat(),
                "systemCount": existing.system_count,
                "confirmDiscrepancy": True,
                "setVerified": True,
            }
            body.update(self._program_params())
            data = self.api.post(f"/api/books/{book_id}/counts", json=body)

            record = InventoryCount.from_dict(data["count"])
            book = Book.from_dict(data["book"])
            with self._lock:
                self._state = replace(
                    self._state,
                    counts=_merge_count(self._state.counts, record),
                    books=_merge_book(self._state.books, book),
                )
            logger.info("Confirmed discrepancy %s for book %s on %s", record.discrepancy, book_id, count_date.isoformat())

        # The confirmation is already committed; a failed refresh keeps the merged snapshot
        try:
            self._swap(counts=self._get_counts(count_date))
        except ApiError as e:
            logger.warning("Counts refresh after confirmation failed: %s", e.message)

        return record, book
