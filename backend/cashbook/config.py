# backend/cashbook/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # SQLite DB stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cashbook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Products at or below this total quantity count as low stock
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    # Ledger category used when a paid bill has none of its own
    DEFAULT_BILL_CATEGORY = os.environ.get("DEFAULT_BILL_CATEGORY", "Gastos Fijos")

    # Reject sales that would take stock below zero
    SALE_ENFORCE_STOCK = _env_flag("SALE_ENFORCE_STOCK", True)
