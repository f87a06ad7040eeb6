"""Reminder scheduler - expands a milestone into its reminder schedule.

build_schedule is pure: the same inputs always produce an equal, equally
ordered list, so callers recompute the whole schedule on every edit rather
than patching it.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Iterable

from ..models.milestone import ReminderChannel, ReminderScheduleEntry
from .templates import ReminderContext, render
from .timeutils import DUE_HOUR, compute_send_instant, describe_offset, format_in_timezone, resolve_timezone

logger = logging.getLogger(__name__)

# T-30/14/7/3/1 and day-of
DEFAULT_REMINDER_OFFSETS: tuple[int, ...] = (30, 14, 7, 3, 1, 0)


def normalize_offsets(offsets: Iterable[int]) -> list[int]:
    """Drop negative offsets, dedupe and sort ascending."""
    return sorted({int(offset) for offset in offsets if offset >= 0})


def _ordered_channels(channels: Iterable[ReminderChannel | str]) -> list[ReminderChannel]:
    ordered: list[ReminderChannel] = []
    for channel in channels:
        value = ReminderChannel(channel)
        if value not in ordered:
            ordered.append(value)
    return ordered


def entry_id(channel: ReminderChannel, offset_days: int) -> str:
    return f"{channel.value}-{offset_days}"


def build_schedule(
    *,
    grant_title: str,
    milestone_label: str,
    due_date: date,
    channels: Iterable[ReminderChannel | str],
    offsets: Iterable[int],
    timezone: str,
    unsubscribe_url: str,
) -> list[ReminderScheduleEntry]:
    """Build the deduplicated, time-ordered reminder schedule for a milestone.

    One entry per (channel, offset) pair, keyed '<channel>-<offset>'. Negative
    offsets are dropped. Entries are sorted by send_at; ties keep channel order,
    then offset order.

    Returns:
        List of ReminderScheduleEntry, empty if channels or offsets are empty.

    Raises:
        InvalidTimezoneError: If the timezone cannot be resolved.
    """
    safe_offsets = normalize_offsets(offsets)
    ordered_channels = _ordered_channels(channels)
    if not safe_offsets or not ordered_channels:
        return []

    tz = resolve_timezone(timezone)
    due_at = datetime.combine(due_date, time(hour=DUE_HOUR), tzinfo=tz)
    due_label = format_in_timezone(due_at, timezone, fallback=due_date.isoformat())

    unique: dict[str, ReminderScheduleEntry] = {}
    for channel in ordered_channels:
        for offset in safe_offsets:
            send_at = compute_send_instant(due_date, offset, timezone)
            rendered = render(
                channel,
                ReminderContext(
                    grant_title=grant_title,
                    milestone_label=milestone_label,
                    due_date_label=due_label,
                    offset_label=describe_offset(offset),
                    unsubscribe_url=unsubscribe_url,
                ),
            )
            key = entry_id(channel, offset)
            unique[key] = ReminderScheduleEntry(
                id=key,
                channel=channel,
                offset_days=offset,
                send_at=send_at,
                subject=rendered.subject,
                preview=rendered.preview,
                body=rendered.body,
            )

    # sorted() is stable, so same-instant entries keep insertion order
    schedule = sorted(unique.values(), key=lambda entry: entry.send_at)
    logger.debug(
        "Built %d reminders for %s / %s due %s",
        len(schedule), grant_title, milestone_label, due_date,
    )
    return schedule
