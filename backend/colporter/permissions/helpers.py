# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, ROLES


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def validate_role(role):
    """Check if a role name is known."""
    return role in ROLES


def get_role_permissions(role) -> set[str]:
    """Permission codes granted to a role; unknown roles get none."""
    return set(DEFAULT_ROLE_PERMISSIONS.get((role or "").upper(), ()))
