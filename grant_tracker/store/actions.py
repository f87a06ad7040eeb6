"""Actions accepted by the grant reducer.

Actions carry their own timestamps and generated ids so that applying one is
a pure function of (state, action, defaults).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..models import (
    Grant,
    GrantDetailsUpdate,
    ManualGrantInput,
    MilestoneUpdate,
    Opportunity,
    Stage,
    TaskInput,
    TaskUpdate,
)


@dataclass(frozen=True)
class Initialize:
    grants: tuple[Grant, ...]
    at: datetime


@dataclass(frozen=True)
class SaveOpportunity:
    opportunity: Opportunity
    at: datetime
    milestone_ids: tuple[str, ...]

    @property
    def grant_id(self) -> str:
        return self.opportunity.id


@dataclass(frozen=True)
class CreateGrant:
    grant_id: str
    entry: ManualGrantInput
    at: datetime
    milestone_ids: tuple[str, ...]
    task_ids: tuple[str, ...] = ()
    note: str = "Added manually"


@dataclass(frozen=True)
class UpdateStage:
    grant_id: str
    stage: Stage
    at: datetime
    note: Optional[str] = None


@dataclass(frozen=True)
class UpdateDetails:
    grant_id: str
    updates: GrantDetailsUpdate
    at: datetime


@dataclass(frozen=True)
class UpdateMilestone:
    grant_id: str
    milestone_id: str
    updates: MilestoneUpdate
    at: datetime


@dataclass(frozen=True)
class AddMilestone:
    grant_id: str
    milestone_id: str
    label: str
    at: datetime


@dataclass(frozen=True)
class RemoveMilestone:
    grant_id: str
    milestone_id: str
    at: datetime


@dataclass(frozen=True)
class RefreshSchedules:
    at: datetime


@dataclass(frozen=True)
class AddTask:
    grant_id: str
    task_id: str
    task: TaskInput
    at: datetime


@dataclass(frozen=True)
class UpdateTask:
    grant_id: str
    task_id: str
    updates: TaskUpdate
    at: datetime


@dataclass(frozen=True)
class RemoveTask:
    grant_id: str
    task_id: str
    at: datetime


@dataclass(frozen=True)
class ToggleTaskStatus:
    grant_id: str
    task_id: str
    completed: bool
    at: datetime


GrantAction = Union[
    SaveOpportunity,
    CreateGrant,
    UpdateStage,
    UpdateDetails,
    UpdateMilestone,
    AddMilestone,
    RemoveMilestone,
    RefreshSchedules,
    AddTask,
    UpdateTask,
    RemoveTask,
    ToggleTaskStatus,
]

Action = Union[Initialize, GrantAction]
