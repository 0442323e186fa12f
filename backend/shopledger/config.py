# backend/shopledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Session lifetime
    SESSION_IDLE_TIMEOUT_MINUTES = int(os.environ.get("SESSION_IDLE_TIMEOUT_MINUTES", "120"))
    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))

    # Comma separated list of browser origins allowed to call the API
    CORS_ORIGINS = os.environ.get(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    )

    CLOSING_HISTORY_DEFAULT_LIMIT = int(os.environ.get("CLOSING_HISTORY_DEFAULT_LIMIT", "30"))
    CLOSING_HISTORY_MAX_LIMIT = int(os.environ.get("CLOSING_HISTORY_MAX_LIMIT", "365"))
    SERVICE_TRANSACTIONS_PAGE_SIZE = int(os.environ.get("SERVICE_TRANSACTIONS_PAGE_SIZE", "20"))
    LOANS_PAGE_SIZE = int(os.environ.get("LOANS_PAGE_SIZE", "20"))
