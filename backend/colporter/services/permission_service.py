# Overview: Service-layer operations for permission; resolves role grants and logs denials.

"""
Permission checking.

Fail closed: a user holds exactly the permissions of their role and nothing
else. Denials are logged through the application logger.
"""

from flask import current_app

from ..models import User
from ..permissions import get_role_permissions


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def get_user_permissions(user: User) -> set[str]:
    """Permission codes for a user, resolved from the user's role."""
    if not user or not user.is_active:
        return set()
    return get_role_permissions(user.role)


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
) -> None:
    """
    Raise PermissionDeniedError unless user holds permission_code.

    Denials are logged with the user, resource and client address.
    """
    if user_has_permission(user, permission_code):
        return

    current_app.logger.warning(
        "Permission denied: user_id=%s role=%s permission=%s resource=%s ip=%s",
        user.id if user else None,
        user.role if user else None,
        permission_code,
        resource,
        ip_address,
    )
    raise PermissionDeniedError(f"Missing permission: {permission_code}")
