"""Pure state transitions for saved grants.

``apply_action`` maps (grant, action, defaults) to the next grant. It never
mutates its inputs: updated grants are new model instances. ``reduce`` lifts
it to the whole id-keyed map.

Stage transitions are unconstrained: any stage may move to any other stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from pydantic import BaseModel

from ..models import (
    BUILT_IN_MILESTONES,
    Grant,
    GrantSource,
    Milestone,
    MilestoneType,
    ReminderChannel,
    Stage,
    StageHistoryEntry,
    Task,
    TaskStatus,
)
from ..models.org_preferences import DEFAULT_UNSUBSCRIBE_URL, OrgPreferences
from ..reminders.scheduler import DEFAULT_REMINDER_OFFSETS, build_schedule
from .actions import (
    Action,
    AddMilestone,
    AddTask,
    CreateGrant,
    GrantAction,
    Initialize,
    RefreshSchedules,
    RemoveMilestone,
    RemoveTask,
    SaveOpportunity,
    ToggleTaskStatus,
    UpdateDetails,
    UpdateMilestone,
    UpdateStage,
    UpdateTask,
)

logger = logging.getLogger(__name__)

GrantState = dict[str, Grant]


class BuiltInMilestoneError(ValueError):
    """Raised when removing an LOI, Application or Report milestone."""


@dataclass(frozen=True)
class ReminderDefaults:
    """Org-level inputs to reminder scheduling."""

    timezone: str = "UTC"
    channels: tuple[ReminderChannel, ...] = (ReminderChannel.EMAIL,)
    unsubscribe_url: str = DEFAULT_UNSUBSCRIBE_URL

    @classmethod
    def from_preferences(cls, prefs: OrgPreferences) -> "ReminderDefaults":
        return cls(
            timezone=prefs.timezone or "UTC",
            channels=tuple(prefs.reminder_channels),
            unsubscribe_url=prefs.unsubscribe_url,
        )

    def provisioned_channels(self) -> list[ReminderChannel]:
        return list(self.channels) or [ReminderChannel.EMAIL]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _merged(model: BaseModel, changes: dict[str, Any]) -> Any:
    """Return a validated copy of ``model`` with ``changes`` applied."""
    return type(model).model_validate({**model.model_dump(), **changes})


def apply_schedule(milestone: Milestone, grant_title: str, defaults: ReminderDefaults) -> Milestone:
    """Recompute a milestone's scheduled reminders.

    The schedule is empty unless the milestone has a due date, reminders
    enabled and at least one channel. Scheduling failures degrade to an
    empty schedule.
    """
    if not (milestone.due_date and milestone.reminders_enabled and milestone.reminder_channels):
        return milestone.model_copy(update={"scheduled_reminders": []})

    try:
        schedule = build_schedule(
            grant_title=grant_title,
            milestone_label=milestone.label,
            due_date=milestone.due_date,
            channels=milestone.reminder_channels,
            offsets=DEFAULT_REMINDER_OFFSETS,
            timezone=defaults.timezone,
            unsubscribe_url=defaults.unsubscribe_url,
        )
    except ValueError as exc:
        logger.warning("Failed to build reminder schedule for milestone %s: %s", milestone.id, exc)
        schedule = []
    return milestone.model_copy(update={"scheduled_reminders": schedule})


def _provision_milestones(
    ids: Sequence[str],
    grant_title: str,
    application_due: Any,
    at: datetime,
    defaults: ReminderDefaults,
) -> list[Milestone]:
    milestones = []
    for milestone_id, (label, kind) in zip(ids, BUILT_IN_MILESTONES):
        milestone = Milestone(
            id=milestone_id,
            label=label,
            type=kind,
            due_date=application_due if kind == MilestoneType.APPLICATION else None,
            reminders_enabled=True,
            reminder_channels=defaults.provisioned_channels(),
            last_updated_at=at,
        )
        milestones.append(apply_schedule(milestone, grant_title, defaults))
    return milestones


def _history_entry(history: list[StageHistoryEntry], stage: Stage, at: datetime, note: Optional[str]) -> StageHistoryEntry:
    # Keep history non-decreasing even if the clock steps backwards.
    if history and history[-1].changed_at > at:
        at = history[-1].changed_at
    return StageHistoryEntry(stage=stage, changed_at=at, note=note)


def _replace(items: list, item_id: str, replacement: Any) -> list:
    return [replacement if item.id == item_id else item for item in items]


# ---------------------------------------------------------------------------
# Per-action handlers
# ---------------------------------------------------------------------------

def _save_opportunity(grant: Optional[Grant], action: SaveOpportunity, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is not None:
        return grant
    opp = action.opportunity
    return Grant(
        id=opp.id,
        title=opp.title,
        agency=opp.agency,
        opportunity_number=opp.opportunity_number,
        summary=opp.summary,
        url=opp.url,
        close_date=opp.close_date,
        posted_date=opp.posted_date,
        focus_areas=list(opp.focus_areas),
        source=GrantSource.DISCOVERED,
        stage=Stage.RESEARCHING,
        history=[StageHistoryEntry(stage=Stage.RESEARCHING, changed_at=action.at, note="Added to pipeline")],
        milestones=_provision_milestones(action.milestone_ids, opp.title, opp.close_date, action.at, defaults),
        created_at=action.at,
        updated_at=action.at,
    )


def _create_grant(grant: Optional[Grant], action: CreateGrant, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is not None:
        return grant
    entry = action.entry
    tasks = [
        Task(id=task_id, **task.model_dump())
        for task_id, task in zip(action.task_ids, entry.tasks)
    ]
    return Grant(
        id=action.grant_id,
        title=entry.title,
        agency=entry.agency,
        opportunity_number=entry.opportunity_number,
        summary=entry.summary,
        close_date=entry.close_date,
        focus_areas=list(entry.focus_areas),
        source=entry.source,
        stage=entry.stage,
        priority=entry.priority,
        owner=entry.owner,
        notes=entry.notes,
        history=[StageHistoryEntry(stage=entry.stage, changed_at=action.at, note=action.note)],
        milestones=_provision_milestones(action.milestone_ids, entry.title, entry.close_date, action.at, defaults),
        tasks=tasks,
        created_at=action.at,
        updated_at=action.at,
    )


def _update_stage(grant: Optional[Grant], action: UpdateStage, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    entry = _history_entry(grant.history, action.stage, action.at, action.note)
    return grant.model_copy(
        update={"stage": action.stage, "history": [*grant.history, entry], "updated_at": action.at}
    )


def _update_details(grant: Optional[Grant], action: UpdateDetails, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    changes = action.updates.model_dump(exclude_unset=True)
    # owner may be cleared; the other details are not nullable
    changes = {k: v for k, v in changes.items() if v is not None or k == "owner"}
    if not changes:
        return grant
    return grant.model_copy(update={**changes, "updated_at": action.at})


def _update_milestone(grant: Optional[Grant], action: UpdateMilestone, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    target = grant.milestone(action.milestone_id)
    if target is None:
        return grant
    changes = action.updates.model_dump(exclude_unset=True)
    # due_date may be cleared; the other fields are not nullable
    changes = {k: v for k, v in changes.items() if v is not None or k == "due_date"}
    changes["last_updated_at"] = action.at
    updated = apply_schedule(_merged(target, changes), grant.title, defaults)
    return grant.model_copy(
        update={"milestones": _replace(grant.milestones, target.id, updated), "updated_at": action.at}
    )


def _add_milestone(grant: Optional[Grant], action: AddMilestone, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    milestone = Milestone(
        id=action.milestone_id,
        label=action.label,
        type=MilestoneType.CUSTOM,
        reminders_enabled=True,
        reminder_channels=defaults.provisioned_channels(),
        last_updated_at=action.at,
    )
    milestone = apply_schedule(milestone, grant.title, defaults)
    return grant.model_copy(update={"milestones": [*grant.milestones, milestone], "updated_at": action.at})


def _remove_milestone(grant: Optional[Grant], action: RemoveMilestone, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    target = grant.milestone(action.milestone_id)
    if target is None:
        return grant
    if target.is_built_in:
        raise BuiltInMilestoneError(f"{target.type.value} milestone {target.id} cannot be removed")
    remaining = [m for m in grant.milestones if m.id != target.id]
    return grant.model_copy(update={"milestones": remaining, "updated_at": action.at})


def _refresh_schedules(grant: Optional[Grant], action: RefreshSchedules, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    milestones = [apply_schedule(m, grant.title, defaults) for m in grant.milestones]
    return grant.model_copy(update={"milestones": milestones})


def _add_task(grant: Optional[Grant], action: AddTask, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    task = Task(id=action.task_id, **action.task.model_dump())
    return grant.model_copy(update={"tasks": [*grant.tasks, task], "updated_at": action.at})


def _update_task(grant: Optional[Grant], action: UpdateTask, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    target = grant.task(action.task_id)
    if target is None:
        return grant
    updated = _merged(target, action.updates.model_dump(exclude_unset=True))
    return grant.model_copy(update={"tasks": _replace(grant.tasks, target.id, updated), "updated_at": action.at})


def _remove_task(grant: Optional[Grant], action: RemoveTask, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    if grant.task(action.task_id) is None:
        return grant
    remaining = [t for t in grant.tasks if t.id != action.task_id]
    return grant.model_copy(update={"tasks": remaining, "updated_at": action.at})


def _toggle_task_status(grant: Optional[Grant], action: ToggleTaskStatus, defaults: ReminderDefaults) -> Optional[Grant]:
    if grant is None:
        return None
    target = grant.task(action.task_id)
    if target is None:
        return grant
    status = TaskStatus.COMPLETED if action.completed else TaskStatus.PENDING
    updated = target.model_copy(update={"status": status})
    return grant.model_copy(update={"tasks": _replace(grant.tasks, target.id, updated), "updated_at": action.at})


_HANDLERS: dict[type, Callable[[Optional[Grant], Any, ReminderDefaults], Optional[Grant]]] = {
    SaveOpportunity: _save_opportunity,
    CreateGrant: _create_grant,
    UpdateStage: _update_stage,
    UpdateDetails: _update_details,
    UpdateMilestone: _update_milestone,
    AddMilestone: _add_milestone,
    RemoveMilestone: _remove_milestone,
    RefreshSchedules: _refresh_schedules,
    AddTask: _add_task,
    UpdateTask: _update_task,
    RemoveTask: _remove_task,
    ToggleTaskStatus: _toggle_task_status,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def hydrate_grant(grant: Grant, at: datetime, defaults: ReminderDefaults) -> Grant:
    """Normalize a grant loaded from persistence.

    Seeds a history entry when none was stored and recomputes every schedule.
    """
    history = grant.history or [
        StageHistoryEntry(stage=grant.stage, changed_at=grant.created_at or at, note="Restored")
    ]
    milestones = [apply_schedule(m, grant.title, defaults) for m in grant.milestones]
    return grant.model_copy(update={"history": history, "milestones": milestones})


def apply_action(grant: Optional[Grant], action: GrantAction, defaults: ReminderDefaults) -> Optional[Grant]:
    """Apply one action to a single grant.

    Returns the same object when the action does not apply (unknown grant,
    milestone or task), so callers can detect no-ops by identity.

    Raises:
        BuiltInMilestoneError: On removal of a built-in milestone.
    """
    handler = _HANDLERS[type(action)]
    return handler(grant, action, defaults)


def reduce(state: GrantState, action: Action, defaults: ReminderDefaults) -> GrantState:
    """Apply an action to the id-keyed grant map, returning a new map."""
    if isinstance(action, Initialize):
        return {g.id: hydrate_grant(g, action.at, defaults) for g in action.grants}
    if isinstance(action, RefreshSchedules):
        return {gid: apply_action(g, action, defaults) for gid, g in state.items()}

    current = state.get(action.grant_id)
    updated = apply_action(current, action, defaults)
    if updated is current:
        return state
    next_state = dict(state)
    next_state[action.grant_id] = updated
    return next_state
