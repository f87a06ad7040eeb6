"""Smoke test: save grant -> reminder jobs -> dispatch cycle, with mocked externals."""

from datetime import date
from unittest.mock import MagicMock, patch

from grant_tracker.context import AppContext
from grant_tracker.main import run_dispatch_cycle, start_scheduler
from grant_tracker.models import Opportunity, ReminderJob, ReminderJobStatus
from grant_tracker.store import GrantStore


def _config(**overrides):
    config = MagicMock()
    config.reminder_webhook_url = None
    config.dispatch_batch_size = 25
    config.dispatch_interval_minutes = 5
    config.log_level = "INFO"
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


def test_dispatch_cycle_smoke():
    """Jobs queued from a saved grant are drained by one dispatch cycle."""
    repo = MagicMock()
    store = GrantStore("org-1", repository=repo)
    grant = store.save_opportunity(
        Opportunity(id="OPP-1", title="Smoke Grant", agency="HHS", close_date=date(2024, 12, 31))
    )

    synced_org, synced_grant = repo.sync_reminder_jobs.call_args.args
    assert synced_org == "org-1"
    assert synced_grant is grant

    application = grant.milestones[1]
    entry = application.scheduled_reminders[0]
    repo.list_due_reminder_jobs.return_value = [
        ReminderJob(
            id="job-1",
            org_id="org-1",
            org_grant_id=grant.id,
            milestone_id=application.id,
            channel=entry.channel.value,
            send_at=entry.send_at,
            payload={"body": entry.body},
            dedupe_key=f"{grant.id}:{application.id}:{entry.id}",
        )
    ]

    summary = run_dispatch_cycle(AppContext(config=_config(), repository=repo))

    assert summary.sent == 1
    repo.list_due_reminder_jobs.assert_called_once_with(limit=25, now=None)
    repo.mark_reminder_job.assert_called_once_with("job-1", ReminderJobStatus.SENT)


def test_run_once_owns_and_closes_context():
    context = MagicMock()
    context.config = _config()
    context.repository.list_due_reminder_jobs.return_value = []

    with patch("grant_tracker.main.create_context", return_value=context):
        summary = run_dispatch_cycle()

    assert summary.total == 0
    context.close.assert_called_once()


def test_scheduler_registers_dispatch_job():
    with patch("grant_tracker.main.create_context") as mock_create, \
            patch("grant_tracker.main.BlockingScheduler") as mock_scheduler_cls:
        scheduler = mock_scheduler_cls.return_value
        start_scheduler(_config(dispatch_interval_minutes=10))

    kwargs = scheduler.add_job.call_args.kwargs
    assert kwargs["id"] == "dispatch_reminders"
    assert kwargs["max_instances"] == 1
    assert kwargs["args"] == [mock_create.return_value]
    scheduler.start.assert_called_once()
    mock_create.return_value.close.assert_called_once()


def test_context_opens_hydrated_store():
    repo = MagicMock()
    repo.fetch_org_preferences.return_value = None
    repo.load_grants_for_org.return_value = []
    config = _config(org_id="org-7", org_preferences_path=None, default_timezone="America/Denver",
                     unsubscribe_url="https://example.org/unsubscribe", calendar_ics_secret=None)

    store = AppContext(config=config, repository=repo).open_store()

    assert store.org_id == "org-7"
    assert store.preferences.timezone == "America/Denver"
    repo.load_grants_for_org.assert_called_once_with("org-7")
