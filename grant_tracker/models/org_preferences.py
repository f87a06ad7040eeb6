"""OrgPreferences - per-organization settings read by the scheduler and ICS feed."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .milestone import ReminderChannel


DEFAULT_UNSUBSCRIBE_URL = "https://example.org/unsubscribe"


class GoogleOAuthStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    EXPIRED = "expired"


class CalendarSettings(BaseModel):
    """Calendar feed and sync settings."""

    ics_secret: Optional[str] = Field(None, description="Shared secret guarding the ICS feed URL")
    last_generated_at: Optional[datetime] = None
    google_sync_enabled: bool = False
    google_calendar_id: Optional[str] = None
    google_oauth_status: GoogleOAuthStatus = GoogleOAuthStatus.DISCONNECTED
    sync_create: bool = True
    sync_update: bool = True
    sync_delete: bool = True


class OrgPreferences(BaseModel):
    """Organization-level preferences.

    ``timezone`` and ``reminder_channels`` feed reminder scheduling;
    ``timezone`` also feeds the calendar feed.
    """

    states: list[str] = Field(default_factory=list)
    focus_areas: list[str] = Field(default_factory=list)
    timezone: str = Field(default="UTC", description="IANA timezone identifier")
    reminder_channels: list[ReminderChannel] = Field(
        default_factory=lambda: [ReminderChannel.EMAIL],
        description="Default channels for newly provisioned milestones",
    )
    unsubscribe_url: str = Field(default=DEFAULT_UNSUBSCRIBE_URL)
    calendar: CalendarSettings = Field(default_factory=CalendarSettings)
    sms_from_number: Optional[str] = None


class OrgProfile(BaseModel):
    """Row from the orgs table; ``name`` titles the calendar feed."""

    id: str
    name: str
    slug: Optional[str] = None
    timezone: Optional[str] = None
    calendar_ics_secret: Optional[str] = None
