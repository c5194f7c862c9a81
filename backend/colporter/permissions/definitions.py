# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View books, stock levels, movements and inventory counts",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_BOOKS",
        "Manage Books",
        "Create and edit books in the program catalog",
        PermissionCategory.INVENTORY,
    ),
    (
        "TOGGLE_BOOK_STATUS",
        "Activate/Deactivate Books",
        "Hide or show a book in the catalog and on the count sheet",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Record manual IN/OUT stock movements for a book",
        PermissionCategory.INVENTORY,
    ),
    (
        "DELETE_BOOKS",
        "Delete Books",
        "Remove a book that was never sold, counted or adjusted",
        PermissionCategory.INVENTORY,
    ),
]


# -- COUNTS --

COUNT_PERMISSIONS = [
    (
        "RECORD_COUNTS",
        "Record Counts",
        "Enter manual (physical) counts on the reconciliation sheet",
        PermissionCategory.COUNTS,
    ),
    (
        "CONFIRM_DISCREPANCIES",
        "Confirm Discrepancies",
        "Commit a counted discrepancy as the book's new stock",
        PermissionCategory.COUNTS,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "VIEW_TRANSACTIONS",
        "View Transactions",
        "List daily sales transactions",
        PermissionCategory.SALES,
    ),
    (
        "CREATE_TRANSACTIONS",
        "Create Transactions",
        "Report a day's book deliveries (created PENDING)",
        PermissionCategory.SALES,
    ),
    (
        "APPROVE_TRANSACTIONS",
        "Approve Transactions",
        "Approve or reject pending transactions",
        PermissionCategory.SALES,
    ),
]


PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + COUNT_PERMISSIONS
    + SALES_PERMISSIONS
)
