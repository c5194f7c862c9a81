from __future__ import annotations

from ..extensions import db
from colporter.time_utils import to_utc_z


class Program(db.Model):
    """
    A colporter program (one selling season).

    Every book, user, transaction and inventory count belongs to exactly one
    program. The session captures the program at login so each request is
    scoped without an extra lookup.
    """
    __tablename__ = "programs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Program id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
