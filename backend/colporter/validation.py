from __future__ import annotations
from datetime import date, datetime
from colporter.time_utils import parse_iso_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

BOOK_SIZES = ("LARGE", "SMALL")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., confirming a verified count)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion shared by column validation and request bodies.

    Rejects bools, floats, decimals and scientific notation.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_non_negative_int(value: Any, field: str) -> int:
    if value is None:
        raise ValidationError(f"{field} is required")
    n = coerce_int(value, field)
    if n < 0:
        raise ValidationError(f"{field} must be >= 0")
    return n


def coerce_date(value: Any, field: str) -> date:
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, (date, datetime)):
        return parse_iso_date(value)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")
    try:
        d = parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")
    if d is None:
        raise ValidationError(f"{field} is required")
    return d


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        return coerce_bool(value)

    if isinstance(coltype, Date):
        return coerce_date(value, col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_book(patch: dict) -> None:
    """
    Business rules for books that are not captured by SQLAlchemy metadata alone.
    """
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    if "initial_stock" in patch and patch["initial_stock"] is not None:
        if patch["initial_stock"] < 0:
            raise ValidationError("initial_stock must be >= 0")

    if "size" in patch and patch["size"] is not None:
        size = patch["size"].upper()
        if size not in BOOK_SIZES:
            raise ValidationError(f"size must be one of: {', '.join(BOOK_SIZES)}")
        patch["size"] = size


def enforce_rules_transaction_lines(lines: Any) -> list[tuple[int, int]]:
    """
    Normalize transaction line items to (book_id, quantity) pairs.

    Quantities must be positive and a book may appear only once per transaction.
    """
    if not isinstance(lines, list) or not lines:
        raise ValidationError("lines must be a non-empty list")

    result: list[tuple[int, int]] = []
    seen: set[int] = set()
    for raw in lines:
        if not isinstance(raw, dict):
            raise ValidationError("each line must be an object with book_id and quantity")
        book_id = coerce_int(raw.get("book_id"), "book_id") if raw.get("book_id") is not None else None
        if book_id is None:
            raise ValidationError("book_id is required on every line")
        quantity = coerce_int(raw.get("quantity"), "quantity") if raw.get("quantity") is not None else 0
        if quantity <= 0:
            raise ValidationError("quantity must be > 0")
        if book_id in seen:
            raise ValidationError(f"Book {book_id} appears more than once")
        seen.add(book_id)
        result.append((book_id, quantity))
    return result
