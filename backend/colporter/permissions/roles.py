# Overview: Role names and the permissions each role is granted.

ROLE_ADMIN = "ADMIN"
ROLE_SUPERVISOR = "SUPERVISOR"
ROLE_VIEWER = "VIEWER"

ROLES = (ROLE_ADMIN, ROLE_SUPERVISOR, ROLE_VIEWER)


DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: [
        "VIEW_INVENTORY",
        "MANAGE_BOOKS",
        "TOGGLE_BOOK_STATUS",
        "ADJUST_INVENTORY",
        "DELETE_BOOKS",
        "RECORD_COUNTS",
        "CONFIRM_DISCREPANCIES",
        "VIEW_TRANSACTIONS",
        "CREATE_TRANSACTIONS",
        "APPROVE_TRANSACTIONS",
    ],
    ROLE_SUPERVISOR: [
        "VIEW_INVENTORY",
        "MANAGE_BOOKS",
        "ADJUST_INVENTORY",
        "RECORD_COUNTS",
        "CONFIRM_DISCREPANCIES",
        "VIEW_TRANSACTIONS",
        "CREATE_TRANSACTIONS",
    ],
    ROLE_VIEWER: [
        "VIEW_INVENTORY",
        "VIEW_TRANSACTIONS",
        "CREATE_TRANSACTIONS",
    ],
}
