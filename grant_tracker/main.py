"""Reminder dispatch worker with APScheduler.

- Every DISPATCH_INTERVAL_MINUTES, pending reminder jobs whose send_at has
  passed are delivered (at most DISPATCH_BATCH_SIZE per cycle)
- Jobs are marked sent / failed so a job is never delivered twice
- `python -m grant_tracker.main --once` runs a single cycle and exits
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import Config, load_config
from .context import AppContext, create_context
from .dispatch import DispatchSummary, ReminderDispatcher

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


def run_dispatch_cycle(context: Optional[AppContext] = None) -> DispatchSummary:
    """Deliver one batch of due reminder jobs."""
    start_time = datetime.now(timezone.utc)
    owns_context = context is None
    context = context or create_context()

    try:
        dispatcher = ReminderDispatcher(context.repository, webhook_url=context.config.reminder_webhook_url)
        summary = dispatcher.run_due_jobs(limit=context.config.dispatch_batch_size)
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(f"Dispatch cycle completed in {duration:.2f} seconds ({summary.total} jobs)")
        return summary
    except Exception as e:
        logger.error(f"Dispatch cycle failed: {e}", exc_info=True)
        raise
    finally:
        if owns_context:
            context.close()


def start_scheduler(config: Optional[Config] = None) -> None:
    """Start APScheduler for continuous reminder dispatch."""
    config = config or load_config()

    # Configure logging level
    logging.getLogger().setLevel(config.log_level)

    context = create_context(config)
    logger.info("Initializing reminder dispatch worker")
    logger.info(f"Dispatch interval: {config.dispatch_interval_minutes} minutes")
    if not config.reminder_webhook_url:
        logger.warning("REMINDER_WEBHOOK_URL not set, dispatching in dry-run mode")

    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(
        run_dispatch_cycle,
        trigger=IntervalTrigger(minutes=config.dispatch_interval_minutes),
        args=[context],
        id="dispatch_reminders",
        name="Dispatch due reminder jobs",
        replace_existing=True,
        max_instances=1,  # Prevent overlapping runs
        next_run_time=datetime.now(timezone.utc),
    )

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down scheduler...")
    finally:
        context.close()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "--once":
        run_dispatch_cycle()
    else:
        start_scheduler()
