"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration.

    Tests derive variants with ``dataclasses.replace`` instead of mutating
    process environment.
    """

    app_name: str
    app_version: str
    database_path: Path
    log_level: str
    admin_token: Optional[str]
    facility_timezone: str
    booking_lock_timeout_seconds: float
    seed_demo_data: bool
    server_host: str
    server_port: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    admin_token = os.getenv("ADMIN_TOKEN") or None
    return Settings(
        app_name=os.getenv("APP_NAME", "Facility Booking Service"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        database_path=Path(os.getenv("DATABASE_PATH", "data/facility_booking.db")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        admin_token=admin_token,
        facility_timezone=os.getenv("FACILITY_TIMEZONE", "UTC"),
        booking_lock_timeout_seconds=_env_float("BOOKING_LOCK_TIMEOUT_SECONDS", 5.0),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", True),
        server_host=os.getenv("SERVER_HOST", "127.0.0.1"),
        server_port=_env_int("SERVER_PORT", 8000),
    )
