from .dispatcher import DispatchRetryableError, DispatchSummary, ReminderDispatcher

__all__ = ["DispatchRetryableError", "DispatchSummary", "ReminderDispatcher"]
