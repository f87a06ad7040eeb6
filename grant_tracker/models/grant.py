"""Grant - aggregate root for a saved grant in an organization's pipeline."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from .milestone import Milestone


class Stage(str, Enum):
    RESEARCHING = "Researching"
    DRAFTING = "Drafting"
    SUBMITTED = "Submitted"
    AWARDED = "Awarded"
    DECLINED = "Declined"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class GrantSource(str, Enum):
    DISCOVERED = "discovered"
    MANUAL = "manual"
    IMPORTED = "imported"


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class StageHistoryEntry(BaseModel):
    """Append-only record of a stage transition."""

    stage: Stage
    changed_at: datetime = Field(..., validation_alias=AliasChoices("changed_at", "changedAt"))
    note: Optional[str] = None


class Task(BaseModel):
    """Checklist item owned by a grant. Status is independent of stage."""

    id: str
    label: str
    due_date: Optional[datetime] = None
    assignee_email: Optional[str] = None
    assignee_id: Optional[str] = None
    assignee_name: Optional[str] = None
    created_by_email: Optional[str] = None
    created_by_id: Optional[str] = None
    created_by_name: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING


class Grant(BaseModel):
    """A grant saved into the pipeline, with its milestones and tasks.

    The current ``stage`` always equals the stage of the last ``history`` entry.
    """

    # Core identifiers
    id: str = Field(..., description="Grant identifier, unique within the org")
    title: str = Field(..., description="Grant title")
    agency: str = Field(default="", description="Funding agency or foundation")
    opportunity_number: str = Field(default="", description="Official opportunity number")

    # Descriptive
    summary: str = Field(default="")
    url: str = Field(default="")
    focus_areas: list[str] = Field(default_factory=list)
    close_date: Optional[date] = Field(None, description="Application deadline")
    posted_date: Optional[date] = Field(None)
    source: GrantSource = Field(default=GrantSource.DISCOVERED)

    # Pipeline state
    stage: Stage = Field(default=Stage.RESEARCHING)
    priority: Priority = Field(default=Priority.MEDIUM)
    owner: Optional[str] = Field(None, description="Owner email")
    notes: str = Field(default="")
    attachments: list[str] = Field(default_factory=list, description="Attachment URLs")
    history: list[StageHistoryEntry] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)

    # Metadata
    created_at: Optional[datetime] = Field(None)
    updated_at: Optional[datetime] = Field(None)

    def milestone(self, milestone_id: str) -> Optional[Milestone]:
        return next((m for m in self.milestones if m.id == milestone_id), None)

    def task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)


class GrantDetailsUpdate(BaseModel):
    """Editable descriptive fields of a saved grant."""

    owner: Optional[str] = None
    priority: Optional[Priority] = None
    notes: Optional[str] = None
    attachments: Optional[list[str]] = None


class TaskInput(BaseModel):
    """Fields supplied when creating a task."""

    label: str = Field(..., min_length=1)
    due_date: Optional[datetime] = None
    assignee_email: Optional[str] = None
    assignee_id: Optional[str] = None
    assignee_name: Optional[str] = None
    created_by_email: Optional[str] = None
    created_by_id: Optional[str] = None
    created_by_name: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING


class TaskUpdate(BaseModel):
    label: Optional[str] = None
    due_date: Optional[datetime] = None
    assignee_email: Optional[str] = None
    assignee_id: Optional[str] = None
    assignee_name: Optional[str] = None
    status: Optional[TaskStatus] = None


class ManualGrantInput(BaseModel):
    """A grant entered by hand or parsed from a CSV row."""

    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    agency: str = Field(..., min_length=1)
    opportunity_number: str = ""
    summary: str = ""
    close_date: Optional[date] = None
    owner: Optional[str] = None
    notes: str = ""
    priority: Priority = Priority.MEDIUM
    stage: Stage = Stage.RESEARCHING
    focus_areas: list[str] = Field(default_factory=list)
    tasks: list[TaskInput] = Field(default_factory=list)
    source: GrantSource = GrantSource.MANUAL
