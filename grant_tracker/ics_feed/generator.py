"""ICS calendar feed for an organization's milestones.

One VEVENT per (grant, milestone) with a due date, starting 09:00 local to
the org timezone and lasting one hour. Event UIDs derive only from the grant
id and milestone label, so regenerating the feed for the same data yields
identical UIDs and calendar clients dedupe events on refetch.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Sequence, Union

from icalendar import Calendar, Event

from ..models import Grant
from ..reminders.timeutils import InvalidTimezoneError, resolve_timezone

logger = logging.getLogger(__name__)

EVENT_START_HOUR = 9
EVENT_DURATION = timedelta(hours=1)
UID_DOMAIN = "grant-tracker.local"
PRODID = "-//Grant Tracker//Calendar//EN"


@dataclass(frozen=True)
class CalendarMilestone:
    label: str
    due_date: Optional[date] = None


@dataclass(frozen=True)
class CalendarGrant:
    id: str
    title: str
    milestones: Sequence[CalendarMilestone] = field(default_factory=tuple)


def event_uid(grant_id: str, milestone_label: str) -> str:
    """Deterministic event UID for a grant milestone."""
    return re.sub(r"\s+", "-", f"{grant_id}-{milestone_label}") + f"@{UID_DOMAIN}"


def _feed_zone(timezone_name: str) -> tzinfo:
    try:
        return resolve_timezone(timezone_name)
    except InvalidTimezoneError:
        logger.warning("Invalid feed timezone %r, using UTC", timezone_name)
        return resolve_timezone("UTC")


def _build_event(grant: Union[Grant, CalendarGrant], label: str, due: date, zone: tzinfo,
                 stamp: datetime) -> Event:
    start = datetime.combine(due, time(hour=EVENT_START_HOUR), tzinfo=zone)
    event = Event()
    event.add("uid", event_uid(grant.id, label))
    event.add("dtstamp", stamp)
    event.add("dtstart", start)
    event.add("dtend", start + EVENT_DURATION)
    event.add("summary", f"{label} · {grant.title}")
    event.add("description", f"{label} due for {grant.title}")
    return event


def generate_feed(
    org_name: str,
    timezone_name: str,
    grants: Iterable[Union[Grant, CalendarGrant]],
    generated_at: Optional[datetime] = None,
) -> str:
    """Generate the ICS document for an organization.

    Args:
        org_name: Used in the calendar name.
        timezone_name: IANA timezone events are local to. An unknown zone
            falls back to UTC.
        grants: Grant models or CalendarGrant records.
        generated_at: DTSTAMP instant. Defaults to now.

    Returns:
        Calendar text with CRLF line endings. Milestones without a due date
        are skipped.
    """
    zone = _feed_zone(timezone_name)
    stamp = (generated_at or datetime.now(timezone.utc)).astimezone(timezone.utc)

    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", f"{org_name} Deadlines")
    cal.add("x-wr-timezone", str(zone))

    count = 0
    for grant in grants:
        for milestone in grant.milestones:
            if not milestone.due_date:
                continue
            cal.add_component(_build_event(grant, milestone.label, milestone.due_date, zone, stamp))
            count += 1

    logger.debug("Generated calendar feed for %s with %d event(s)", org_name, count)
    return cal.to_ical().decode("utf-8")
