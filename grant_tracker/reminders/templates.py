"""Channel-specific reminder templates.

Every rendered reminder carries an opt-out: the email footer always ends with
the unsubscribe link, and SMS always offers STOP plus the link.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ..models.milestone import ReminderChannel

PREVIEW_LENGTH = 160

PREP_CHECKLIST = [
    "Confirm owner and collaborators",
    "Upload supporting documents",
    "Ensure budget + narratives align",
]


@dataclass(frozen=True)
class ReminderContext:
    """Values substituted into a reminder template."""

    grant_title: str
    milestone_label: str
    due_date_label: str
    offset_label: str
    unsubscribe_url: str


@dataclass(frozen=True)
class RenderedReminder:
    body: str
    subject: Optional[str] = None

    @property
    def preview(self) -> str:
        return preview(self.body)


def preview(body: str) -> str:
    """Body truncated to at most PREVIEW_LENGTH characters."""
    return body[:PREVIEW_LENGTH]


# ---------------------------------------------------------------------------
# Per-channel renderers
# ---------------------------------------------------------------------------

def _render_email(ctx: ReminderContext) -> RenderedReminder:
    subject = f"{ctx.milestone_label} due {ctx.offset_label} · {ctx.grant_title}"
    checklist = "\n".join(f"• {item}" for item in PREP_CHECKLIST)
    body = (
        "Hi team,\n"
        "\n"
        f"{ctx.milestone_label} for {ctx.grant_title} is due {ctx.offset_label}.\n"
        "\n"
        f"Due: {ctx.due_date_label}\n"
        "\n"
        "Prep checklist\n"
        f"{checklist}\n"
        "\n"
        "Need more time? Snooze or reassign directly from your Grant Tracker workspace.\n"
        "\n"
        f"{_email_footer(ctx.unsubscribe_url)}"
    )
    return RenderedReminder(subject=subject, body=body)


def _email_footer(unsubscribe_url: str) -> str:
    return (
        "--\n"
        "You are receiving this reminder because your organization opted into "
        "deadline alerts in Grant Tracker.\n"
        f"Unsubscribe: {unsubscribe_url}"
    )


def _render_sms(ctx: ReminderContext) -> RenderedReminder:
    body = (
        f"{ctx.milestone_label} for {ctx.grant_title} is due {ctx.offset_label} "
        f"(due {ctx.due_date_label}). Reply STOP to opt out or visit {ctx.unsubscribe_url}"
    )
    return RenderedReminder(body=body)


_RENDERERS: dict[ReminderChannel, Callable[[ReminderContext], RenderedReminder]] = {
    ReminderChannel.EMAIL: _render_email,
    ReminderChannel.SMS: _render_sms,
}


def render(channel: ReminderChannel | str, ctx: ReminderContext) -> RenderedReminder:
    """Render subject/body for a reminder on the given channel.

    Raises:
        ValueError: If the channel is not a known ReminderChannel.
    """
    return _RENDERERS[ReminderChannel(channel)](ctx)
