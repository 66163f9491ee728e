from __future__ import annotations

import os
from decimal import Decimal


def _env_flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///memorial_park.db",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    WAIVER_APPROVAL_MIN_LEVEL = int(os.getenv("WAIVER_APPROVAL_MIN_LEVEL", "5"))
    SENIOR_AGE = int(os.getenv("SENIOR_AGE", "60"))
    GRAVE_CAPACITY = int(os.getenv("GRAVE_CAPACITY", "2"))
    SECOND_SLOT_DISCOUNT_PCT = Decimal(os.getenv("SECOND_SLOT_DISCOUNT_PCT", "10.00"))
    ARREARS_DEFAULT_MONTHS = int(os.getenv("ARREARS_DEFAULT_MONTHS", "3"))

    PAYMENT_STALE_SECONDS = int(os.getenv("PAYMENT_STALE_SECONDS", "120"))
    RECONCILE_INTERVAL_MINUTES = int(os.getenv("RECONCILE_INTERVAL_MINUTES", "10"))
    SCHEDULER_ENABLED = _env_flag("SCHEDULER_ENABLED")
    PAYMENT_GATEWAY = None
