"""Deliver due reminder jobs to the outbound webhook with retry logic."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..models.reminder_job import ReminderJob, ReminderJobStatus

logger = logging.getLogger(__name__)


class DispatchRetryableError(Exception):
    """Raised on 429 / 5xx so tenacity retries."""
    pass


@dataclass
class DispatchSummary:
    sent: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.sent + self.failed


class ReminderDispatcher:
    """Sends pending reminder jobs and records the outcome on each job row.

    Without a webhook URL the dispatcher runs dry: it logs each job and marks
    it sent, which keeps the queue draining in local setups.
    """

    def __init__(
        self,
        repository: Any,
        webhook_url: Optional[str] = None,
        timeout: float = 30,
    ) -> None:
        self._repo = repository
        self.webhook_url = webhook_url
        self.timeout = timeout

    @property
    def dry_run(self) -> bool:
        return not self.webhook_url

    # ------------------------------------------------------------------
    # Retry-wrapped HTTP post
    # ------------------------------------------------------------------
    @retry(
        retry=retry_if_exception_type(DispatchRetryableError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    def _post(self, payload: dict) -> None:
        """POST a job to the webhook. Raises DispatchRetryableError on 429/5xx."""
        resp = httpx.post(self.webhook_url, json=payload, timeout=self.timeout)

        if resp.status_code == 429 or resp.status_code >= 500:
            raise DispatchRetryableError(
                f"Webhook returned {resp.status_code}: {resp.text[:200]}"
            )
        if resp.status_code >= 400:
            # Non-retryable (bad payload, auth)
            raise RuntimeError(f"Webhook rejected job: {resp.status_code} {resp.text[:200]}")

    @staticmethod
    def _payload(job: ReminderJob) -> dict:
        return {
            "job_id": job.id,
            "org_id": job.org_id,
            "grant_id": job.org_grant_id,
            "milestone_id": job.milestone_id,
            "channel": job.channel,
            "send_at": job.send_at.isoformat(),
            "dedupe_key": job.dedupe_key,
            **job.payload,
        }

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------
    def send(self, job: ReminderJob) -> bool:
        """Deliver one job and mark it. Returns True on success."""
        if self.dry_run:
            logger.info(
                "reminder_dispatch dry_run=true job_id=%s channel=%s dedupe_key=%s",
                job.id, job.channel, job.dedupe_key,
            )
            self._repo.mark_reminder_job(job.id, ReminderJobStatus.SENT)
            return True

        try:
            self._post(self._payload(job))
        except (DispatchRetryableError, RuntimeError, httpx.HTTPError) as exc:
            logger.error(
                "reminder_dispatch status=failed job_id=%s channel=%s error=%s",
                job.id, job.channel, exc,
            )
            self._repo.mark_reminder_job(job.id, ReminderJobStatus.FAILED, str(exc))
            return False

        logger.info(
            "reminder_dispatch status=sent job_id=%s channel=%s dedupe_key=%s",
            job.id, job.channel, job.dedupe_key,
        )
        self._repo.mark_reminder_job(job.id, ReminderJobStatus.SENT)
        return True

    def run_due_jobs(self, limit: int = 25, now: Optional[datetime] = None) -> DispatchSummary:
        """Send up to ``limit`` pending jobs whose send_at has passed."""
        summary = DispatchSummary()
        for job in self._repo.list_due_reminder_jobs(limit=limit, now=now):
            if self.send(job):
                summary.sent += 1
            else:
                summary.failed += 1
        logger.info(
            "reminder_dispatch_cycle sent=%d failed=%d limit=%d",
            summary.sent, summary.failed, limit,
        )
        return summary
