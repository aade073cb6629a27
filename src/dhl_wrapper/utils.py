from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


def to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware UTC.

    If the datetime is naive (no tzinfo), assume it is UTC and attach tzinfo=UTC.
    If it is aware, convert to UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_dt_iso(s: Optional[str]) -> Optional[datetime]:
    """Lenient ISO datetime parser that preserves timezone when present.

    Supports:
    - ...Z (UTC)
    - ...+HH:MM or ...+HHMM (inserts colon)
    - date-only (YYYY-MM-DD) -> midnight
    Returns None if parsing fails.
    """
    if not s:
        return None
    t = s.strip()
    if t.endswith("Z"):
        t = t[:-1] + "+00:00"
    # +0200 -> +02:00
    if len(t) >= 5 and t[-5] in ("+", "-") and t[-3] != ":" and "T" in t:
        t = t[:-2] + ":" + t[-2:]
    try:
        return datetime.fromisoformat(t)
    except ValueError:
        for fmt in ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d"):
            try:
                return datetime.strptime(s.strip(), fmt)
            except ValueError:
                continue
    return None


def format_query_value(value: Any) -> str:
    """Render a JSON-mode value the way DHL expects it in a query string.

    Booleans are lower-case, floats use the shortest round-trip digits in plain
    decimal notation (53.575264, 0.00001; never 1e-05), enums by value.
    """
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Non-finite number cannot be sent: {value!r}")
        text = format(Decimal(repr(value)), "f")
        return text if "." in text else text + ".0"
    return str(value)


def lang2(language: Optional[str], default: str = "en") -> str:
    """Two-letter lower-case language code (best effort).

    Accepts forms like en, en-US, en_US.UTF-8.
    """
    v = (language or "").strip().replace("-", "_")
    code = v.split("_", 1)[0].split(".", 1)[0].lower()
    return code[:2] if len(code) >= 2 and code[:2].isalpha() else default
