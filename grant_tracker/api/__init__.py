from .calendar_feed import app

__all__ = ["app"]
