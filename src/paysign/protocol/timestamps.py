"""Timestamp format and freshness checks.

Only strict ISO-8601 UTC is accepted: ``YYYY-MM-DDTHH:MM:SS(.fraction)?Z``.
The freshness window is symmetric: a timestamp too far in the future is
rejected just like a stale one. ``now`` is always passed in by the caller.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from ..config import FRESHNESS_WINDOW_SEC
from ..errors import TimestampExpiredError, TimestampFormatError

TIMESTAMP_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?Z",
    re.ASCII,
)


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise TimestampFormatError("timestamp must be a string")
    m = TIMESTAMP_RE.fullmatch(value)
    if not m:
        raise TimestampFormatError(f"not an ISO-8601 UTC timestamp: {value!r}")
    year, month, day, hour, minute, second, fraction = m.groups()
    # datetime resolution is microseconds; extra digits are truncated
    micros = int((fraction or "").ljust(6, "0")[:6])
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second),
            micros, tzinfo=timezone.utc,
        )
    except ValueError as e:
        raise TimestampFormatError(f"invalid calendar value in {value!r}") from e


def is_well_formed(value: str) -> bool:
    try:
        parse_timestamp(value)
    except TimestampFormatError:
        return False
    return True


def check_freshness(value: str, now: datetime, window_sec: int = FRESHNESS_WINDOW_SEC) -> datetime:
    ts = parse_timestamp(value)
    skew = abs(_as_utc(now) - ts)
    if skew > timedelta(seconds=window_sec):
        raise TimestampExpiredError(f"timestamp skew {skew.total_seconds():.3f}s exceeds {window_sec}s")
    return ts


def is_fresh(value: str, now: datetime, window_sec: int = FRESHNESS_WINDOW_SEC) -> bool:
    try:
        check_freshness(value, now, window_sec)
    except (TimestampFormatError, TimestampExpiredError):
        return False
    return True


def generate_timestamp(now: datetime | None = None) -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-01-01T00:00:00.000Z."""
    current = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    return current.strftime("%Y-%m-%dT%H:%M:%S.") + f"{current.microsecond // 1000:03d}Z"


__all__ = [
    "TIMESTAMP_RE",
    "parse_timestamp",
    "is_well_formed",
    "check_freshness",
    "is_fresh",
    "generate_timestamp",
]
