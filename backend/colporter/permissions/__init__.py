# Overview: Permission system package.
# Re-exports all public APIs so callers import from colporter.permissions.

from .categories import PermissionCategory
from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, ROLES, ROLE_ADMIN, ROLE_SUPERVISOR, ROLE_VIEWER
from .helpers import (
    get_all_permission_codes,
    get_role_permissions,
    validate_permission_code,
    validate_role,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_SUPERVISOR",
    "ROLE_VIEWER",
    "get_all_permission_codes",
    "get_role_permissions",
    "validate_permission_code",
    "validate_role",
]
