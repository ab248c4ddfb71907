# backend/dualpos/config.py
from __future__ import annotations
import os
from decimal import Decimal


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/dualpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///dualpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # LRD per 1 USD. Seeds the rate record and backs split-payment
    # validation when the register does not send its own rate.
    DEFAULT_LRD_PER_USD = Decimal(os.environ.get("DEFAULT_LRD_PER_USD", "197"))

    # IANA zone name for whole-day boundaries; None means server local time
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE") or None

    TRANSACTION_LIST_LIMIT = 50
    RECENT_TRANSACTIONS_LIMIT = 50
    TOP_PRODUCTS_LIMIT = 10
    RECENT_CREDITS_LIMIT = 20


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BUSINESS_TIMEZONE = "UTC"
    DEFAULT_LRD_PER_USD = Decimal("197")
    LOG_LEVEL = "WARNING"
