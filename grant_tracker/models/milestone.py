"""Milestone and ReminderScheduleEntry - dated checkpoints on a saved grant.

A milestone carries reminder configuration; its scheduled reminders are
derived data, recomputed by the store on every relevant edit.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ReminderChannel(str, Enum):
    EMAIL = "email"
    SMS = "sms"


class MilestoneType(str, Enum):
    LOI = "LOI"
    APPLICATION = "Application"
    REPORT = "Report"
    CUSTOM = "Custom"


# Provisioned once per grant at save time, in this order.
BUILT_IN_MILESTONES: list[tuple[str, MilestoneType]] = [
    ("Letter of Intent", MilestoneType.LOI),
    ("Application", MilestoneType.APPLICATION),
    ("Report", MilestoneType.REPORT),
]


class ReminderScheduleEntry(BaseModel):
    """One scheduled reminder for a milestone on a single channel."""

    id: str = Field(..., description="Dedupe key: '<channel>-<offset_days>'")
    channel: ReminderChannel = Field(..., description="Delivery channel")
    offset_days: int = Field(..., ge=0, description="Days before the due date")
    send_at: datetime = Field(..., description="UTC instant the reminder should go out")
    subject: Optional[str] = Field(None, description="Email subject (email only)")
    preview: str = Field(..., description="Rendered body truncated to 160 characters")
    body: str = Field(default="", description="Full rendered body handed to dispatch")


class Milestone(BaseModel):
    """A dated checkpoint on a grant with its reminder configuration."""

    id: str = Field(..., description="Milestone identifier")
    label: str = Field(..., description="Display label")
    type: MilestoneType = Field(default=MilestoneType.CUSTOM, description="LOI, Application, Report or Custom")
    due_date: Optional[date] = Field(None, description="Due date, None until scheduled")
    reminders_enabled: bool = Field(default=True)
    reminder_channels: list[ReminderChannel] = Field(default_factory=lambda: [ReminderChannel.EMAIL])
    scheduled_reminders: list[ReminderScheduleEntry] = Field(
        default_factory=list, description="Derived; recomputed, never edited directly"
    )
    last_updated_at: Optional[datetime] = Field(None)

    @property
    def is_built_in(self) -> bool:
        return self.type != MilestoneType.CUSTOM


class MilestoneUpdate(BaseModel):
    """Partial update for a milestone. Only explicitly set fields are applied."""

    label: Optional[str] = None
    due_date: Optional[date] = None
    reminders_enabled: Optional[bool] = None
    reminder_channels: Optional[list[ReminderChannel]] = None
