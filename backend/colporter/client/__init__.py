"""
Dashboard client for the reconciliation page.

The backend is the source of truth; this package keeps a read-through
snapshot of books, transactions and counts and drives the page workflow.
"""

from .api import ApiClient, ApiError
from .capabilities import Capabilities
from .store import InventoryStore, ReconciliationError, RowBusyError, StoreState
from .tracking import InventoryTracking
from .records import Baseline, Book, InventoryCount, Transaction, TransactionLine

__all__ = [
    "ApiClient",
    "ApiError",
    "Baseline",
    "Book",
    "Capabilities",
    "InventoryCount",
    "InventoryStore",
    "InventoryTracking",
    "ReconciliationError",
    "RowBusyError",
    "StoreState",
    "Transaction",
    "TransactionLine",
]
