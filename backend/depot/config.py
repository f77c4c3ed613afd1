# backend/depot/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/depot.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///depot.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seconds a writer waits for the SQLite write lock before the request
    # fails with a ConcurrencyConflict. Other engines use their own lock timeouts.
    DEPOT_DB_LOCK_TIMEOUT_SECONDS = float(os.environ.get("DEPOT_DB_LOCK_TIMEOUT_SECONDS", "5"))

    # When enabled, a restock also books an "out" capital entry for the
    # received stock at cost price.
    DEPOT_RESTOCK_DEBITS_CAPITAL = _env_flag("DEPOT_RESTOCK_DEBITS_CAPITAL", False)

    DEPOT_LOG_LEVEL = os.environ.get("DEPOT_LOG_LEVEL", "INFO")
