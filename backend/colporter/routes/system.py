# backend/colporter/routes/system.py
"""
System health endpoint.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Book, Program, User

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Check database connectivity with a few cheap counts."""
    start_time = time.time()
    try:
        program_count = db.session.query(Program).count()
        user_count = db.session.query(User).count()
        book_count = db.session.query(Book).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "programs": program_count,
                "users": user_count,
                "books": book_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return {"status": database["status"], "checks": {"database": database}}, status_code
