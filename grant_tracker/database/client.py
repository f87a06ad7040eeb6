"""Supabase persistence for org grants, org preferences and reminder jobs."""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from supabase import Client, create_client

from ..models.grant import Grant
from ..models.org_preferences import OrgPreferences, OrgProfile
from ..models.reminder_job import ReminderJob, ReminderJobStatus, job_dedupe_key

logger = logging.getLogger(__name__)

GRANT_COLUMNS = [
    "id",
    "org_id",
    "title",
    "agency",
    "summary",
    "close_date",
    "posted_date",
    "url",
    "stage",
    "priority",
    "notes",
    "owner",
    "attachments",
    "history",
    "milestones",
    "tasks",
    "source",
    "opportunity_number",
    "focus_areas",
    "created_at",
    "updated_at",
]

JOB_COLUMNS = "id,org_id,org_grant_id,milestone_id,channel,send_at,payload,status,dedupe_key"
ORG_COLUMNS = "id,name,slug,timezone,calendar_ics_secret"

# Columns whose NULL means "use the model default".
_NULLABLE_DEFAULTS: Dict[str, Any] = {
    "agency": "",
    "summary": "",
    "url": "",
    "notes": "",
    "opportunity_number": "",
    "stage": "Researching",
    "priority": "Medium",
    "source": "manual",
    "attachments": [],
    "history": [],
    "milestones": [],
    "tasks": [],
    "focus_areas": [],
}


def row_to_grant(row: Dict[str, Any]) -> Grant:
    """Validate an org_grants row into a Grant.

    Raises:
        ValidationError: If the row (or its JSON columns) is malformed.
    """
    data = {k: v for k, v in row.items() if k != "org_id"}
    for column, default in _NULLABLE_DEFAULTS.items():
        if data.get(column) is None:
            data[column] = default
    return Grant.model_validate(data)


def grant_to_row(grant: Grant, org_id: str) -> Dict[str, Any]:
    record = grant.model_dump(mode="json")
    record["org_id"] = org_id
    record["updated_at"] = datetime.now(timezone.utc).isoformat()
    if record.get("created_at") is None:
        record["created_at"] = record["updated_at"]
    return record


class SupabaseClient:
    """Client for the org_grants, org_preferences and reminder_jobs tables."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        """Initialize Supabase client from explicit args or env vars.

        Args:
            url: Supabase project URL (falls back to SUPABASE_URL env var).
            key: Supabase service key (falls back to SUPABASE_KEY env var).
        """
        self._url = url or os.environ["SUPABASE_URL"]
        self._key = key or os.environ["SUPABASE_KEY"]
        self._client: Client = create_client(self._url, self._key)

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    def load_grants_for_org(self, org_id: str) -> List[Grant]:
        """Return every valid grant row for an org, newest first.

        Malformed rows are logged and skipped rather than trusted.
        """
        response = (
            self._client.table("org_grants")
            .select(",".join(GRANT_COLUMNS))
            .eq("org_id", org_id)
            .order("updated_at", desc=True)
            .execute()
        )
        grants: List[Grant] = []
        for row in response.data or []:
            try:
                grants.append(row_to_grant(row))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed org_grants row id=%s: %d validation error(s)",
                    row.get("id"), exc.error_count(),
                )
        return grants

    def save_grant(self, org_id: str, grant: Grant) -> Dict[str, Any]:
        """Insert or update a grant row keyed by id (last writer wins)."""
        response = (
            self._client.table("org_grants")
            .upsert(grant_to_row(grant, org_id), on_conflict="id")
            .execute()
        )
        logger.info("Upserted org grant %s for org %s", grant.id, org_id)
        return response.data[0] if response.data else {}

    def delete_grant(self, org_id: str, grant_id: str) -> None:
        self._client.table("org_grants").delete().eq("org_id", org_id).eq("id", grant_id).execute()
        logger.info("Deleted org grant %s for org %s", grant_id, org_id)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def fetch_org_preferences(self, org_id: str) -> Optional[OrgPreferences]:
        """Return the org's preferences, or None when no row exists.

        NULL columns fall back to model defaults.
        """
        response = (
            self._client.table("org_preferences")
            .select("*")
            .eq("org_id", org_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        if not rows:
            return None
        row = {k: v for k, v in rows[0].items() if v is not None and k not in ("org_id", "updated_at")}
        return OrgPreferences.model_validate(row)

    def fetch_org_profile(self, org_id: str) -> Optional[OrgProfile]:
        """Return the org's row from the orgs table, or None when missing."""
        response = (
            self._client.table("orgs")
            .select(ORG_COLUMNS)
            .eq("id", org_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        if not rows:
            return None
        return OrgProfile.model_validate({k: v for k, v in rows[0].items() if v is not None})

    def upsert_org_preferences(self, org_id: str, preferences: OrgPreferences) -> Dict[str, Any]:
        record = preferences.model_dump(mode="json")
        record["org_id"] = org_id
        record["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = (
            self._client.table("org_preferences")
            .upsert(record, on_conflict="org_id")
            .execute()
        )
        logger.info("Upserted preferences for org %s", org_id)
        return response.data[0] if response.data else {}

    # ------------------------------------------------------------------
    # Reminder jobs
    # ------------------------------------------------------------------

    def sync_reminder_jobs(self, org_id: str, grant: Grant, now: Optional[datetime] = None) -> int:
        """Mirror a grant's reminder schedules into reminder_jobs.

        Jobs are keyed by '<grant>:<milestone>:<channel>-<offset>'. Pending
        jobs are rewritten, new keys inserted, and pending jobs whose key left
        the schedule are cancelled. Entries whose send_at is already behind
        ``now`` are not queued; a pending job for one is cancelled. Sent or
        failed jobs are never touched, so re-editing a milestone cannot cause
        a second send.

        Returns:
            Number of jobs written (inserted or rewritten).
        """
        existing = (
            self._client.table("reminder_jobs")
            .select("dedupe_key,status")
            .eq("org_grant_id", grant.id)
            .execute()
        )
        status_by_key = {row["dedupe_key"]: row["status"] for row in existing.data or []}
        final = {ReminderJobStatus.SENT.value, ReminderJobStatus.FAILED.value}
        now = now or datetime.now(timezone.utc)

        rows: List[Dict[str, Any]] = []
        wanted: set = set()
        for milestone in grant.milestones:
            for entry in milestone.scheduled_reminders:
                if entry.send_at < now:
                    continue
                key = job_dedupe_key(grant.id, milestone.id, entry.id)
                wanted.add(key)
                if status_by_key.get(key) in final:
                    continue
                rows.append({
                    "org_id": org_id,
                    "org_grant_id": grant.id,
                    "milestone_id": milestone.id,
                    "channel": entry.channel.value,
                    "send_at": entry.send_at.isoformat(),
                    "payload": {
                        "grant_title": grant.title,
                        "milestone_label": milestone.label,
                        "offset_days": entry.offset_days,
                        "subject": entry.subject,
                        "body": entry.body,
                    },
                    "status": ReminderJobStatus.PENDING.value,
                    "dedupe_key": key,
                })

        if rows:
            self._client.table("reminder_jobs").upsert(rows, on_conflict="dedupe_key").execute()

        stale = [
            key for key, status in status_by_key.items()
            if status == ReminderJobStatus.PENDING.value and key not in wanted
        ]
        if stale:
            (
                self._client.table("reminder_jobs")
                .update({"status": ReminderJobStatus.CANCELLED.value})
                .in_("dedupe_key", stale)
                .execute()
            )

        logger.info(
            "Synced reminder jobs for grant %s: %d written, %d cancelled",
            grant.id, len(rows), len(stale),
        )
        return len(rows)

    def list_due_reminder_jobs(self, limit: int = 25, now: Optional[datetime] = None) -> List[ReminderJob]:
        """Fetch pending jobs whose send_at has passed, oldest first."""
        now = now or datetime.now(timezone.utc)
        response = (
            self._client.table("reminder_jobs")
            .select(JOB_COLUMNS)
            .lte("send_at", now.isoformat())
            .eq("status", ReminderJobStatus.PENDING.value)
            .order("send_at")
            .limit(limit)
            .execute()
        )
        jobs: List[ReminderJob] = []
        for row in response.data or []:
            try:
                jobs.append(ReminderJob.model_validate({**row, "payload": row.get("payload") or {}}))
            except ValidationError as exc:
                logger.warning("Skipping malformed reminder_jobs row id=%s: %s", row.get("id"), exc)
        return jobs

    def mark_reminder_job(
        self,
        job_id: str,
        status: ReminderJobStatus,
        error: Optional[str] = None,
    ) -> None:
        self._client.table("reminder_jobs").update({
            "status": ReminderJobStatus(status).value,
            "processed_at": datetime.now(timezone.utc).isoformat(),
            "error": error[:1000] if error else None,
        }).eq("id", job_id).execute()
        logger.info("Marked reminder job %s as %s", job_id, ReminderJobStatus(status).value)
