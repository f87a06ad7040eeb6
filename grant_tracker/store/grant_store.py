"""GrantStore - single writer for an organization's saved grants.

Every mutation runs as one critical section per grant id: read the current
grant, apply the pure transition, write it back and mirror it to the
persistence collaborator. Mutations of different grants never block each
other. Loading a fresh grant map or swapping preferences waits for
in-flight mutations to finish.

Persistence is last-writer-wins per grant row. A failed remote write raises
PersistenceError but the in-memory state, which is the source of truth, is
kept as committed.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Iterator, Optional

from ..models import (
    BUILT_IN_MILESTONES,
    Grant,
    GrantDetailsUpdate,
    GrantSource,
    ManualGrantInput,
    MilestoneUpdate,
    Opportunity,
    OrgPreferences,
    Stage,
    TaskInput,
    TaskUpdate,
)
from .actions import (
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
from .reducer import ReminderDefaults, apply_action, reduce

logger = logging.getLogger(__name__)


class GrantNotFoundError(KeyError):
    """Raised when an operation targets a grant the store does not hold."""


class PersistenceError(RuntimeError):
    """A grant was updated in memory but could not be mirrored remotely."""

    def __init__(self, grant_id: str, cause: Exception) -> None:
        super().__init__(f"Failed to persist grant {grant_id}: {cause}")
        self.grant_id = grant_id
        self.cause = cause


@dataclass
class ImportOutcome:
    imported: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    unsynced: list[str] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class GrantStore:
    """In-memory grant map for one organization, mirrored to persistence."""

    def __init__(
        self,
        org_id: str,
        preferences: Optional[OrgPreferences] = None,
        repository: Any | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        """Initialize store.

        Args:
            org_id: Owning organization.
            preferences: Org preferences (timezone, default channels, unsubscribe URL).
            repository: Persistence collaborator with ``save_grant`` and
                ``sync_reminder_jobs`` (e.g. SupabaseClient), or None for memory only.
            clock: Returns the current UTC time.
            id_factory: Returns fresh milestone/task ids.
        """
        self.org_id = org_id
        self._preferences = preferences or OrgPreferences()
        self._repository = repository
        self._clock = clock
        self._new_id = id_factory
        self._grants: dict[str, Grant] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def preferences(self) -> OrgPreferences:
        return self._preferences

    @property
    def defaults(self) -> ReminderDefaults:
        return ReminderDefaults.from_preferences(self._preferences)

    def get(self, grant_id: str) -> Grant:
        try:
            return self._grants[grant_id]
        except KeyError:
            raise GrantNotFoundError(grant_id) from None

    def grants(self) -> list[Grant]:
        return list(self._grants.values())

    def __contains__(self, grant_id: object) -> bool:
        return grant_id in self._grants

    def __len__(self) -> int:
        return len(self._grants)

    # ------------------------------------------------------------------
    # Core dispatch
    # ------------------------------------------------------------------

    def _lock_for(self, grant_id: str, create: bool = False) -> threading.Lock:
        with self._locks_guard:
            if not create and grant_id not in self._grants:
                raise GrantNotFoundError(grant_id)
            return self._locks.setdefault(grant_id, threading.Lock())

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold every per-grant lock, waiting for in-flight mutations to finish."""
        with self._locks_guard, ExitStack() as stack:
            for grant_id in sorted(self._locks):
                stack.enter_context(self._locks[grant_id])
            yield

    def _dispatch(self, grant_id: str, action: GrantAction, require_existing: bool = True) -> Grant:
        with self._lock_for(grant_id, create=not require_existing):
            current = self._grants.get(grant_id)
            if current is None and require_existing:
                raise GrantNotFoundError(grant_id)
            updated = apply_action(current, action, self.defaults)
            if updated is current:
                return current
            self._grants[grant_id] = updated
            self._mirror(updated)
            return updated

    def _mirror(self, grant: Grant) -> None:
        if self._repository is None:
            return
        try:
            self._repository.save_grant(self.org_id, grant)
            self._repository.sync_reminder_jobs(self.org_id, grant)
        except Exception as exc:
            logger.error("Could not persist grant %s for org %s: %s", grant.id, self.org_id, exc)
            raise PersistenceError(grant.id, exc) from exc

    def _milestone_ids(self) -> tuple[str, ...]:
        return tuple(self._new_id() for _ in BUILT_IN_MILESTONES)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, grants: Iterable[Grant]) -> None:
        """Replace the in-memory map with grants loaded from persistence."""
        with self._exclusive():
            self._grants = reduce({}, Initialize(grants=tuple(grants), at=self._clock()), self.defaults)
        logger.info("Initialized store for org %s with %d grants", self.org_id, len(self._grants))

    def hydrate(self) -> None:
        """Load this org's grants from the repository."""
        if self._repository is None:
            return
        self.initialize(self._repository.load_grants_for_org(self.org_id))

    def update_preferences(self, preferences: OrgPreferences) -> None:
        """Swap org preferences; reschedule everything if scheduling inputs changed."""
        with self._exclusive():
            before = self.defaults
            self._preferences = preferences
        if self.defaults != before:
            logger.info("Reminder defaults changed for org %s, refreshing schedules", self.org_id)
            self.refresh_schedules()

    def refresh_schedules(self) -> list[str]:
        """Recompute every milestone schedule of every grant.

        Returns:
            Ids of grants refreshed in memory but not persisted.
        """
        action = RefreshSchedules(at=self._clock())
        unsynced: list[str] = []
        for grant_id in list(self._grants):
            try:
                self._dispatch(grant_id, action)
            except PersistenceError as exc:
                unsynced.append(exc.grant_id)
        return unsynced

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    def save_opportunity(self, opportunity: Opportunity) -> Grant:
        """Save a discovered opportunity into the pipeline (idempotent)."""
        action = SaveOpportunity(opportunity=opportunity, at=self._clock(), milestone_ids=self._milestone_ids())
        return self._dispatch(opportunity.id, action, require_existing=False)

    def create_manual_grant(self, entry: ManualGrantInput) -> Grant:
        """Create a grant from manual or imported input. Returns the stored grant."""
        grant_id = entry.id or self._new_id()
        note = "Imported from CSV" if entry.source == GrantSource.IMPORTED else "Added manually"
        action = CreateGrant(
            grant_id=grant_id,
            entry=entry,
            at=self._clock(),
            milestone_ids=self._milestone_ids(),
            task_ids=tuple(self._new_id() for _ in entry.tasks),
            note=note,
        )
        return self._dispatch(grant_id, action, require_existing=False)

    def bulk_import(self, entries: Iterable[ManualGrantInput]) -> ImportOutcome:
        """Create grants from many inputs, skipping ids that already exist."""
        outcome = ImportOutcome()
        for entry in entries:
            if entry.id and entry.id in self._grants:
                outcome.skipped.append(entry.id)
                continue
            try:
                grant = self.create_manual_grant(entry)
            except PersistenceError as exc:
                outcome.imported.append(exc.grant_id)
                outcome.unsynced.append(exc.grant_id)
                continue
            outcome.imported.append(grant.id)
        logger.info(
            "Bulk import for org %s: %d imported, %d skipped, %d unsynced",
            self.org_id, len(outcome.imported), len(outcome.skipped), len(outcome.unsynced),
        )
        return outcome

    def update_stage(self, grant_id: str, stage: Stage, note: Optional[str] = None) -> Grant:
        return self._dispatch(grant_id, UpdateStage(grant_id=grant_id, stage=Stage(stage), at=self._clock(), note=note))

    def update_details(self, grant_id: str, updates: GrantDetailsUpdate) -> Grant:
        return self._dispatch(grant_id, UpdateDetails(grant_id=grant_id, updates=updates, at=self._clock()))

    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------

    def update_milestone(self, grant_id: str, milestone_id: str, updates: MilestoneUpdate) -> Grant:
        action = UpdateMilestone(grant_id=grant_id, milestone_id=milestone_id, updates=updates, at=self._clock())
        return self._dispatch(grant_id, action)

    def add_milestone(self, grant_id: str, label: str) -> Grant:
        """Add a Custom milestone."""
        action = AddMilestone(grant_id=grant_id, milestone_id=self._new_id(), label=label, at=self._clock())
        return self._dispatch(grant_id, action)

    def remove_milestone(self, grant_id: str, milestone_id: str) -> Grant:
        """Remove a Custom milestone. Raises BuiltInMilestoneError for built-ins."""
        return self._dispatch(grant_id, RemoveMilestone(grant_id=grant_id, milestone_id=milestone_id, at=self._clock()))

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(self, grant_id: str, task: TaskInput) -> Grant:
        action = AddTask(grant_id=grant_id, task_id=self._new_id(), task=task, at=self._clock())
        return self._dispatch(grant_id, action)

    def update_task(self, grant_id: str, task_id: str, updates: TaskUpdate) -> Grant:
        return self._dispatch(grant_id, UpdateTask(grant_id=grant_id, task_id=task_id, updates=updates, at=self._clock()))

    def remove_task(self, grant_id: str, task_id: str) -> Grant:
        return self._dispatch(grant_id, RemoveTask(grant_id=grant_id, task_id=task_id, at=self._clock()))

    def toggle_task_status(self, grant_id: str, task_id: str, completed: bool) -> Grant:
        action = ToggleTaskStatus(grant_id=grant_id, task_id=task_id, completed=completed, at=self._clock())
        return self._dispatch(grant_id, action)
