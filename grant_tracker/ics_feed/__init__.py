"""ICS calendar feed generation."""

from .generator import CalendarGrant, CalendarMilestone, event_uid, generate_feed

__all__ = ["CalendarGrant", "CalendarMilestone", "event_uid", "generate_feed"]
