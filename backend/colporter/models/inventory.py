from __future__ import annotations

from ..extensions import db
from colporter.time_utils import to_utc_z, to_iso_date


class Book(db.Model):
    """
    A sellable book in a program's catalog.

    STOCK MODEL:
    - initial_stock: opening stock of the current reconciliation baseline
    - sold: cumulative quantity of approved transactions (only ever grows)
    - stock: remaining physical inventory, max(0, initial_stock - approved
      quantity dated after baseline_date); recalculated by the backend
    - baseline_date: date of the last confirmed inventory count. Confirming
      a discrepancy moves initial_stock/stock to the manual count.

    size is the canonical LARGE/SMALL classification. Price is never used to
    classify at runtime (see `flask books backfill-sizes` for legacy rows).
    """
    __tablename__ = "books"
    __table_args__ = (
        db.Index("ix_books_program_title", "program_id", "title"),
        db.Index("ix_books_program_active", "program_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(db.Integer, db.ForeignKey("programs.id"), nullable=False, index=True)

    isbn = db.Column(db.String(32), nullable=True)
    title = db.Column(db.String(255), nullable=False)
    author = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(64), nullable=True)

    # LARGE or SMALL; NULL only on legacy rows awaiting backfill
    size = db.Column(db.String(8), nullable=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    initial_stock = db.Column(db.Integer, nullable=False, default=0)
    sold = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    baseline_date = db.Column(db.Date, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    program = db.relationship("Program", backref=db.backref("books", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def baselines(self) -> list["InventoryCount"]:
        """Confirmed counts of this book, each carrying the baseline it replaced."""
        return sorted((c for c in self.inventory_counts if c.confirmed), key=lambda c: c.count_date)

    def __repr__(self) -> str:
        return f"<Book id={self.id} title={self.title!r} program_id={self.program_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "program_id": self.program_id,
            "isbn": self.isbn,
            "title": self.title,
            "author": self.author,
            "category": self.category,
            "size": self.size,
            "price_cents": self.price_cents,
            "initial_stock": self.initial_stock,
            "sold": self.sold,
            "stock": self.stock,
            "baseline_date": to_iso_date(self.baseline_date),
            "baselines": [c.baseline_dict() for c in self.baselines],
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryCount(db.Model):
    """
    Physical count of one book on one date.

    STATUS:
    - PENDING: no manual count yet
    - VERIFIED: manual == system, or a discrepancy was confirmed
    - DISCREPANCY: manual != system, not yet confirmed

    system_count is snapshotted on first save and never rewritten, so the
    magnitude of a confirmed discrepancy stays inspectable.
    """
    __tablename__ = "inventory_counts"
    __table_args__ = (
        db.UniqueConstraint("book_id", "count_date", name="uq_inventory_counts_book_date"),
        db.Index("ix_inventory_counts_program_date", "program_id", "count_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(db.Integer, db.ForeignKey("programs.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)
    count_date = db.Column(db.Date, nullable=False, index=True)

    system_count = db.Column(db.Integer, nullable=False)
    manual_count = db.Column(db.Integer, nullable=True)
    discrepancy = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)

    confirmed = db.Column(db.Boolean, nullable=False, default=False)
    confirmed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Book baseline replaced by the confirmation; set only on confirmed records
    previous_initial_stock = db.Column(db.Integer, nullable=True)
    previous_baseline_date = db.Column(db.Date, nullable=True)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    book = db.relationship("Book", backref=db.backref("inventory_counts", lazy=True))
    updated_by = db.relationship("User", foreign_keys=[updated_by_user_id])
    confirmed_by = db.relationship("User", foreign_keys=[confirmed_by_user_id])
    __mapper_args__ = {"version_id_col": version_id}

    def baseline_dict(self) -> dict:
        return {
            "count_date": to_iso_date(self.count_date),
            "previous_initial_stock": self.previous_initial_stock,
            "previous_baseline_date": to_iso_date(self.previous_baseline_date),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "program_id": self.program_id,
            "book_id": self.book_id,
            "book_title": self.book.title if self.book else None,
            "book_size": self.book.size if self.book else None,
            "count_date": to_iso_date(self.count_date),
            "system_count": self.system_count,
            "manual_count": self.manual_count,
            "discrepancy": self.discrepancy,
            "status": self.status,
            "confirmed": self.confirmed,
            "confirmed_by_user_id": self.confirmed_by_user_id,
            "confirmed_at": to_utc_z(self.confirmed_at) if self.confirmed_at else None,
            "updated_by_user_id": self.updated_by_user_id,
            "user_name": self.updated_by.display_name if self.updated_by else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Audit trail of stock changes that did not come from sales.

    Confirming a count discrepancy writes one IN (found) or OUT (lost)
    movement of |discrepancy| units.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # IN, OUT
    movement_type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    movement_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    book = db.relationship("Book", backref=db.backref("movements", lazy=True))
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "user_id": self.user_id,
            "user_name": self.user.display_name if self.user else None,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "note": self.note,
            "movement_date": to_utc_z(self.movement_date),
        }
