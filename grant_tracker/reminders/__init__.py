"""Reminder scheduling engine: offsets, templates and schedule expansion."""

from .scheduler import DEFAULT_REMINDER_OFFSETS, build_schedule, normalize_offsets
from .templates import ReminderContext, RenderedReminder, render
from .timeutils import (
    DUE_HOUR,
    InvalidTimezoneError,
    compute_send_instant,
    describe_offset,
    format_in_timezone,
)

__all__ = [
    "DEFAULT_REMINDER_OFFSETS",
    "build_schedule",
    "normalize_offsets",
    "ReminderContext",
    "RenderedReminder",
    "render",
    "DUE_HOUR",
    "InvalidTimezoneError",
    "compute_send_instant",
    "describe_offset",
    "format_in_timezone",
]
