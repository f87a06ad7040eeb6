"""Milestone/task domain store: pure reducer plus the per-org GrantStore."""

from .grant_store import GrantNotFoundError, GrantStore, ImportOutcome, PersistenceError
from .reducer import BuiltInMilestoneError, ReminderDefaults, apply_action, apply_schedule, reduce

__all__ = [
    "GrantNotFoundError",
    "GrantStore",
    "ImportOutcome",
    "PersistenceError",
    "BuiltInMilestoneError",
    "ReminderDefaults",
    "apply_action",
    "apply_schedule",
    "reduce",
]
