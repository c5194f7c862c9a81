from .programs import Program
from .auth import User, SessionToken
from .inventory import Book, InventoryCount, InventoryMovement
from .sales import Transaction, TransactionLine

__all__ = [
    'Program',
    'User', 'SessionToken',
    'Book', 'InventoryCount', 'InventoryMovement',
    'Transaction', 'TransactionLine',
]
