from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """Current calendar day in UTC; the default reconciliation date."""
    return utcnow().date()


def parse_iso_date(value: Optional[str | date]) -> Optional[date]:
    """
    Parse a "YYYY-MM-DD" string into a date.

    - None / "" -> None
    - A full ISO datetime ("2024-06-01T00:00:00Z") keeps only its date part,
      matching how count dates are sent by dashboards that serialize Date objects.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s.split("T", 1)[0])


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_iso_date(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    return d.isoformat()
