"""Shared SQLite connection and column codec helpers."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Optional

from facility_booking.domain.models import Localized
from facility_booking.domain.serialization import localized_from_dict, localized_to_dict


def connect(db_path: Path) -> sqlite3.Connection:
    connection = sqlite3.connect(db_path, timeout=30.0)
    connection.row_factory = sqlite3.Row
    return connection


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def load_json(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    return json.loads(raw)


def dump_localized(value: Optional[Localized]) -> Optional[str]:
    return dump_json(localized_to_dict(value))


def load_localized(raw: Optional[str]) -> Optional[Localized]:
    return localized_from_dict(load_json(raw))
