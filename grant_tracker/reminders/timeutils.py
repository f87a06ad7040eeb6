"""Time and offset helpers for reminder scheduling.

A milestone is treated as due at DUE_HOUR local time on its due date. A
reminder with offset N is sent N calendar days earlier at the same local
hour, so DST transitions shift the UTC instant, not the wall-clock time.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DUE_HOUR = 14  # 2 PM local time


class InvalidTimezoneError(ValueError):
    """Raised when a timezone identifier cannot be resolved."""


def resolve_timezone(name: str) -> ZoneInfo:
    """Return the ZoneInfo for an IANA identifier or raise InvalidTimezoneError."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError, OSError) as exc:
        # directory names such as "America" raise IsADirectoryError
        raise InvalidTimezoneError(f"Unknown timezone: {name!r}") from exc


def compute_send_instant(due_date: date, offset_days: int, timezone_name: str = "UTC") -> datetime:
    """Return the UTC instant a reminder ``offset_days`` before ``due_date`` goes out.

    Args:
        due_date: Milestone due date.
        offset_days: Non-negative number of days before the due date.
        timezone_name: IANA timezone the due hour is local to.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ValueError: If offset_days is negative.
        InvalidTimezoneError: If the timezone cannot be resolved.
    """
    if offset_days < 0:
        raise ValueError(f"offset_days must be non-negative, got {offset_days}")
    tz = resolve_timezone(timezone_name)
    send_day = due_date - timedelta(days=offset_days)
    local = datetime.combine(send_day, time(hour=DUE_HOUR), tzinfo=tz)
    return local.astimezone(timezone.utc)


def _parse_instant(instant: Union[datetime, str]) -> datetime:
    if isinstance(instant, datetime):
        parsed = instant
    else:
        parsed = datetime.fromisoformat(instant.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_in_timezone(
    instant: Union[datetime, str],
    timezone_name: str,
    fallback: Optional[str] = None,
) -> str:
    """Format an instant for display, e.g. ``"Jun 30, 2024, 2:00 PM"``.

    Never raises: on an invalid timezone or unparseable instant returns
    ``fallback``, or the instant's ISO text when no fallback is given.
    """
    try:
        local = _parse_instant(instant).astimezone(resolve_timezone(timezone_name))
    except (ValueError, TypeError, AttributeError) as exc:
        logger.debug("Falling back for %r in %r: %s", instant, timezone_name, exc)
        if fallback is not None:
            return fallback
        return instant.isoformat() if isinstance(instant, datetime) else str(instant)

    hour = local.hour % 12 or 12
    return f"{local:%b} {local.day}, {local.year}, {hour}:{local:%M} {local:%p}"


def describe_offset(offset_days: int) -> str:
    """Human label for an offset: 'today', 'tomorrow' or 'in N days'."""
    if offset_days == 0:
        return "today"
    if offset_days == 1:
        return "tomorrow"
    return f"in {offset_days} days"
