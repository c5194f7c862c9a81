# backend/colporter/config.py
from __future__ import annotations
import os


def _split_origins(value: str) -> set[str]:
    return {o.strip() for o in value.split(",") if o.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/colporter.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///colporter.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Origins allowed to call the API from a browser dashboard
    CORS_ALLOWED_ORIGINS = _split_origins(
        os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        )
    )

    # How long the reconciliation page keeps a success notice visible
    COUNT_SUCCESS_NOTICE_SECONDS = float(os.environ.get("COUNT_SUCCESS_NOTICE_SECONDS", "3"))
