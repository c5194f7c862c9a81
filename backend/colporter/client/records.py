# backend/colporter/client/records.py
"""
Client-side records parsed from the backend's JSON.

Attribute names match the ORM models so the shared reconciliation
functions accept either.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from colporter.time_utils import parse_iso_date


@dataclass(frozen=True)
class Baseline:
    """A confirmed count date and the book baseline it replaced."""
    count_date: date
    previous_initial_stock: int
    previous_baseline_date: date | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Baseline":
        return cls(
            count_date=parse_iso_date(data["count_date"]),
            previous_initial_stock=data.get("previous_initial_stock") or 0,
            previous_baseline_date=parse_iso_date(data.get("previous_baseline_date")),
        )


@dataclass(frozen=True)
class Book:
    id: int
    title: str
    initial_stock: int
    stock: int
    sold: int = 0
    size: str | None = None
    category: str | None = None
    price_cents: int = 0
    baseline_date: date | None = None
    is_active: bool = True
    baselines: tuple[Baseline, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Book":
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            initial_stock=data.get("initial_stock") or 0,
            stock=data.get("stock") or 0,
            sold=data.get("sold") or 0,
            size=data.get("size"),
            category=data.get("category"),
            price_cents=data.get("price_cents") or 0,
            baseline_date=parse_iso_date(data.get("baseline_date")),
            is_active=bool(data.get("is_active", True)),
            baselines=tuple(Baseline.from_dict(b) for b in data.get("baselines") or []),
        )


@dataclass(frozen=True)
class TransactionLine:
    book_id: int
    quantity: int


@dataclass(frozen=True)
class Transaction:
    id: int
    transaction_date: date
    status: str
    lines: tuple[TransactionLine, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        return cls(
            id=data["id"],
            transaction_date=parse_iso_date(data["transaction_date"]),
            status=data["status"],
            lines=tuple(
                TransactionLine(book_id=line["book_id"], quantity=line["quantity"])
                for line in data.get("lines") or []
            ),
        )


@dataclass(frozen=True)
class InventoryCount:
    id: int
    book_id: int
    count_date: date
    system_count: int
    manual_count: int | None
    discrepancy: int
    status: str
    confirmed: bool = False
    book_title: str | None = None
    book_size: str | None = None
    user_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "InventoryCount":
        return cls(
            id=data["id"],
            book_id=data["book_id"],
            count_date=parse_iso_date(data["count_date"]),
            system_count=data["system_count"],
            manual_count=data.get("manual_count"),
            discrepancy=data.get("discrepancy") or 0,
            status=data["status"],
            confirmed=bool(data.get("confirmed", False)),
            book_title=data.get("book_title"),
            book_size=data.get("book_size"),
            user_name=data.get("user_name"),
        )

    @property
    def key(self) -> tuple[int, date]:
        return (self.book_id, self.count_date)
