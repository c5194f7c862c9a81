# backend/colporter/client/tracking.py
"""
Reconciliation page controller.

Holds the page-level UI state (selected date, inline edit, pending
confirmation, messages) on top of an InventoryStore. Rendering is left to
the caller: rows, summary and the can_* / is_row_busy predicates are what a
view needs.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from ..reconciliation import COUNT_STATUS_DISCREPANCY, Row, ReconciliationSummary
from colporter.time_utils import today
from .api import ApiError
from .capabilities import Capabilities
from .records import Book, InventoryCount
from .store import InventoryStore, ReconciliationError

logger = logging.getLogger(__name__)

SUCCESS_NOTICE_SECONDS = 3.0

MSG_COUNT_SAVED = "Inventory count updated"
MSG_COUNT_CONFIRMED = "Inventory count updated and stock adjusted"


@dataclass(frozen=True)
class EditState:
    book_id: int
    system_count: int
    value: object = None


def _parse_count(value) -> int:
    if isinstance(value, bool):
        raise ReconciliationError("Manual count must be a whole number of 0 or more")
    if isinstance(value, int):
        n = value
    elif isinstance(value, str) and value.strip().isdigit():
        n = int(value.strip())
    else:
        raise ReconciliationError("Manual count must be a whole number of 0 or more")
    if n < 0:
        raise ReconciliationError("Manual count must be a whole number of 0 or more")
    return n


class InventoryTracking:
    """
    Workflow for one operator on the reconciliation page.

    Failures of save/confirm are kept in `error` and leave the edit (or the
    pending confirmation) open so the operator can retry.
    """

    def __init__(
        self,
        store: InventoryStore,
        capabilities: Capabilities,
        *,
        selected_date: Optional[date] = None,
        notice_seconds: float = SUCCESS_NOTICE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.capabilities = capabilities
        self.selected_date = selected_date or today()
        self.editing: Optional[EditState] = None
        self.pending_confirmation: Optional[int] = None
        self.error: Optional[str] = None
        self.notice_seconds = notice_seconds
        self._clock = clock
        self._notice: Optional[tuple[str, float]] = None

    @classmethod
    def for_session(cls, store: InventoryStore, login_payload: dict, **kwargs) -> "InventoryTracking":
        """Build the controller from a login response (capabilities and notice timing)."""
        settings = login_payload.get("settings") or {}
        kwargs.setdefault("notice_seconds", float(settings.get("count_success_notice_seconds", SUCCESS_NOTICE_SECONDS)))
        return cls(store, Capabilities.from_login(login_payload), **kwargs)

    # -------------------------------------------------------------------------
    # View state
    # -------------------------------------------------------------------------

    @property
    def rows(self) -> list[Row]:
        return self.store.rows(self.selected_date)

    @property
    def summary(self) -> ReconciliationSummary:
        return self.store.summary(self.selected_date)

    @property
    def is_loading(self) -> bool:
        return self.store.state.is_loading

    @property
    def page_error(self) -> Optional[str]:
        return self.error or self.store.state.error

    @property
    def success_message(self) -> Optional[str]:
        if self._notice is None:
            return None
        message, expires_at = self._notice
        if self._clock() >= expires_at:
            self._notice = None
            return None
        return message

    def _notify(self, message: str) -> None:
        self._notice = (message, self._clock() + self.notice_seconds)

    def _row(self, book_id: int) -> Optional[Row]:
        for row in self.rows:
            if row.book_id == book_id:
                return row
        return None

    def can_edit(self, row: Row) -> bool:
        return self.capabilities.can_edit_counts and not self.is_row_busy(row)

    def can_confirm(self, row: Row) -> bool:
        return (
            self.capabilities.can_confirm_discrepancies
            and row.persisted
            and row.status == COUNT_STATUS_DISCREPANCY
            and row.manual_count is not None
            and not self.is_row_busy(row)
        )

    def is_row_busy(self, row: Row) -> bool:
        return self.store.is_row_busy(row.book_id, row.count_date)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def open(self) -> bool:
        return self.store.load(self.selected_date)

    def select_date(self, count_date: date) -> bool:
        self.selected_date = count_date
        self.editing = None
        self.pending_confirmation = None
        self.error = None
        return self.store.load(count_date)

    # -------------------------------------------------------------------------
    # Inline edit
    # -------------------------------------------------------------------------

    def begin_edit(self, book_id: int) -> EditState:
        """Start editing a row; the system count shown now is kept as the snapshot."""
        if not self.capabilities.can_edit_counts:
            raise ReconciliationError("You do not have permission to record counts")
        row = self._row(book_id)
        if row is None:
            raise ReconciliationError(f"Book {book_id} is not on this sheet")
        self.editing = EditState(book_id=book_id, system_count=row.system_count, value=row.manual_count)
        self.error = None
        return self.editing

    def set_edit_value(self, value) -> None:
        if self.editing is None:
            raise ReconciliationError("No count is being edited")
        self.editing = EditState(self.editing.book_id, self.editing.system_count, value)

    def cancel_edit(self) -> None:
        self.editing = None
        self.error = None

    def save(self) -> Optional[InventoryCount]:
        """
        Save the current edit. Returns the saved record, or None on failure
        (with `error` set and the edit still open).
        """
        if self.editing is None:
            raise ReconciliationError("No count is being edited")
        edit = self.editing
        try:
            manual = _parse_count(edit.value)
            record = self.store.save_manual_count(edit.book_id, self.selected_date, manual, edit.system_count)
        except (ApiError, ReconciliationError) as e:
            logger.info("Count save for book %s failed: %s", edit.book_id, e)
            self.error = str(e)
            return None

        self.editing = None
        self.error = None
        self._notify(MSG_COUNT_SAVED)
        return record

    # -------------------------------------------------------------------------
    # Discrepancy confirmation
    # -------------------------------------------------------------------------

    def request_confirmation(self, book_id: int) -> None:
        row = self._row(book_id)
        if row is None or not self.can_confirm(row):
            raise ReconciliationError("This row has no discrepancy that you can confirm")
        self.pending_confirmation = book_id

    def cancel_confirmation(self) -> None:
        self.pending_confirmation = None

    def confirm(self) -> Optional[tuple[InventoryCount, Book]]:
        if self.pending_confirmation is None:
            raise ReconciliationError("No confirmation is pending")
        book_id = self.pending_confirmation
        try:
            result = self.store.confirm_discrepancy(book_id, self.selected_date)
        except (ApiError, ReconciliationError) as e:
            logger.info("Confirmation for book %s failed: %s", book_id, e)
            self.error = str(e)
            return None

        self.pending_confirmation = None
        self.error = None
        self._notify(MSG_COUNT_CONFIRMED)
        return result
