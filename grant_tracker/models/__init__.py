"""Shared Pydantic models for the grant tracker - contract for store, scheduler and persistence."""

from .grant import (
    Grant,
    GrantDetailsUpdate,
    GrantSource,
    ManualGrantInput,
    Priority,
    Stage,
    StageHistoryEntry,
    Task,
    TaskInput,
    TaskStatus,
    TaskUpdate,
)
from .milestone import (
    BUILT_IN_MILESTONES,
    Milestone,
    MilestoneType,
    MilestoneUpdate,
    ReminderChannel,
    ReminderScheduleEntry,
)
from .opportunity import Opportunity
from .org_preferences import CalendarSettings, OrgPreferences, OrgProfile
from .reminder_job import ReminderJob, ReminderJobStatus

__all__ = [
    "Grant",
    "GrantDetailsUpdate",
    "GrantSource",
    "ManualGrantInput",
    "Priority",
    "Stage",
    "StageHistoryEntry",
    "Task",
    "TaskInput",
    "TaskStatus",
    "TaskUpdate",
    "BUILT_IN_MILESTONES",
    "Milestone",
    "MilestoneType",
    "MilestoneUpdate",
    "ReminderChannel",
    "ReminderScheduleEntry",
    "Opportunity",
    "CalendarSettings",
    "OrgPreferences",
    "OrgProfile",
    "ReminderJob",
    "ReminderJobStatus",
]
