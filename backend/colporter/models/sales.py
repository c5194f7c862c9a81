from __future__ import annotations

from ..extensions import db
from colporter.time_utils import to_utc_z, to_iso_date


class Transaction(db.Model):
    """
    A day's book deliveries reported by a colporter.

    LIFECYCLE:
    1. PENDING: created by an operator
    2. APPROVED or REJECTED: decided exactly once by an approver

    Only APPROVED transactions reduce the system count of their books.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_program_date", "program_id", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(db.Integer, db.ForeignKey("programs.id"), nullable=False, index=True)
    transaction_date = db.Column(db.Date, nullable=False, index=True)

    # PENDING, APPROVED, REJECTED
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    note = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    decided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "TransactionLine",
        backref="transaction",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="TransactionLine.id",
    )
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    decided_by = db.relationship("User", foreign_keys=[decided_by_user_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "program_id": self.program_id,
            "transaction_date": to_iso_date(self.transaction_date),
            "status": self.status,
            "note": self.note,
            "lines": [line.to_dict() for line in self.lines],
            "created_by_user_id": self.created_by_user_id,
            "decided_by_user_id": self.decided_by_user_id,
            "decided_at": to_utc_z(self.decided_at) if self.decided_at else None,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionLine(db.Model):
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "book_id", name="uq_transaction_lines_txn_book"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    book = db.relationship("Book")

    def to_dict(self) -> dict:
        return {
            "book_id": self.book_id,
            "quantity": self.quantity,
        }
