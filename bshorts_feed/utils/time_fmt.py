"""Timestamp formatting helpers (ISO, display date, snapshot stamp)."""

from __future__ import annotations

import math
from datetime import datetime, timezone


def unix_to_datetime(value: object) -> datetime | None:
    """Convert unix seconds to an aware UTC datetime, or None if unusable."""
    if isinstance(value, bool):
        return None
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def to_iso(dt: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix: 2025-01-01T00:00:00.000Z"""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def to_display_date(dt: datetime) -> str:
    """Short display date: M/D/YYYY"""
    return f"{dt.month}/{dt.day}/{dt.year}"


def snapshot_stamp(dt: datetime) -> str:
    """Compact UTC stamp for snapshot file names: YYYYMMDDTHHMMSS"""
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S")
