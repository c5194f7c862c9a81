# backend/colporter/client/capabilities.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..permissions import get_role_permissions


@dataclass(frozen=True)
class Capabilities:
    """
    What the signed-in operator may do on the reconciliation page.

    Computed once per session and passed to the page controller; the backend
    still enforces the same permissions on every request.
    """
    can_edit_counts: bool = False
    can_confirm_discrepancies: bool = False

    @classmethod
    def from_permissions(cls, permissions: Iterable[str]) -> "Capabilities":
        codes = set(permissions)
        return cls(
            can_edit_counts="RECORD_COUNTS" in codes,
            can_confirm_discrepancies="RECORD_COUNTS" in codes and "CONFIRM_DISCREPANCIES" in codes,
        )

    @classmethod
    def from_login(cls, payload: dict) -> "Capabilities":
        return cls.from_permissions(payload.get("permissions") or [])

    @classmethod
    def for_role(cls, role: str) -> "Capabilities":
        return cls.from_permissions(get_role_permissions(role))
