from __future__ import annotations

import calendar
import os
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app, has_app_context


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


# =============================================================================
# LOCAL (STORE) TIME
# =============================================================================
#
# Sales are stored in UTC. Everything a cashier thinks of as "today" or
# "Tuesday" is evaluated in the store's zone (POS_TIMEZONE, or the server's
# own zone when unset).


LOCALTIME_PATH = "/etc/localtime"


@lru_cache(maxsize=8)
def _server_timezone(tz_env: str, localtime_path: str) -> tzinfo:
    """
    The host's zone with its DST rules, not just today's UTC offset.

    TZ wins when it names an IANA zone (a leading ':' is allowed); otherwise
    the system tzfile is read. Hosts with neither run on UTC.
    """
    name = tz_env.lstrip(":")
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            # POSIX rule strings such as "EST+5" are not zone keys
            pass
    try:
        with open(localtime_path, "rb") as fh:
            return ZoneInfo.from_file(fh, key="localtime")
    except (OSError, ValueError):
        return timezone.utc


def get_local_timezone() -> tzinfo:
    name = ""
    if has_app_context():
        name = current_app.config.get("POS_TIMEZONE") or ""
    if name:
        return ZoneInfo(name)
    return _server_timezone(os.environ.get("TZ", ""), LOCALTIME_PATH)


def normalize_local(now: datetime | None, tz: tzinfo | None = None) -> datetime:
    """
    Coerce an optional 'now' into an aware datetime in the local zone.

    Naive values are taken to already be local wall-clock time.
    """
    tz = tz or get_local_timezone()
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def to_local(dt_utc: datetime, tz: tzinfo | None = None) -> datetime:
    """UTC-naive (as stored) -> aware local datetime."""
    tz = tz or get_local_timezone()
    if dt_utc.tzinfo is None:
        dt_utc = dt_utc.replace(tzinfo=timezone.utc)
    return dt_utc.astimezone(tz)


def to_utc_naive(dt: datetime) -> datetime:
    """Aware datetime -> UTC-naive for querying stored columns."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def day_window(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """[local midnight, next local midnight) for a calendar day."""
    return start_of_day(day, tz), start_of_day(day + timedelta(days=1), tz)


def subtract_months(dt: datetime, months: int) -> datetime:
    """Calendar-month subtraction, clamping the day to the target month length."""
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))
