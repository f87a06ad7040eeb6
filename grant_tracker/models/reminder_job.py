"""ReminderJob - a queued reminder awaiting dispatch."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ReminderJobStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ReminderJob(BaseModel):
    """Row of the reminder_jobs table."""

    id: str
    org_id: str
    org_grant_id: Optional[str] = None
    milestone_id: Optional[str] = None
    channel: str
    send_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)
    status: ReminderJobStatus = ReminderJobStatus.PENDING
    dedupe_key: Optional[str] = Field(
        None, description="'<grant_id>:<milestone_id>:<channel>-<offset_days>'"
    )


def job_dedupe_key(grant_id: str, milestone_id: str, entry_id: str) -> str:
    """Queue-level dedupe key for a schedule entry of a milestone."""
    return f"{grant_id}:{milestone_id}:{entry_id}"
