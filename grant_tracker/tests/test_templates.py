"""Tests for reminders.templates: email/SMS rendering and previews."""

import pytest

from grant_tracker.models.milestone import ReminderChannel
from grant_tracker.reminders.templates import (
    PREP_CHECKLIST,
    PREVIEW_LENGTH,
    ReminderContext,
    preview,
    render,
)

UNSUBSCRIBE = "https://grants.example.org/unsubscribe?org=acme"


def _ctx(**overrides) -> ReminderContext:
    values = dict(
        grant_title="Rural Health Innovation",
        milestone_label="Application",
        due_date_label="Jun 30, 2024, 2:00 PM",
        offset_label="in 7 days",
        unsubscribe_url=UNSUBSCRIBE,
    )
    values.update(overrides)
    return ReminderContext(**values)


# ---------------------------------------------------------------------------
# Email
# ---------------------------------------------------------------------------

class TestEmailTemplate:
    def test_subject_format(self):
        rendered = render(ReminderChannel.EMAIL, _ctx())
        assert rendered.subject == "Application due in 7 days · Rural Health Innovation"

    def test_body_has_due_line_and_checklist(self):
        body = render(ReminderChannel.EMAIL, _ctx()).body
        assert "Due: Jun 30, 2024, 2:00 PM" in body
        for item in PREP_CHECKLIST:
            assert item in body

    def test_footer_always_carries_unsubscribe_link(self):
        body = render(ReminderChannel.EMAIL, _ctx()).body
        assert body.rstrip().endswith(f"Unsubscribe: {UNSUBSCRIBE}")

    def test_accepts_channel_as_string(self):
        rendered = render("email", _ctx())
        assert rendered.subject is not None


# ---------------------------------------------------------------------------
# SMS
# ---------------------------------------------------------------------------

class TestSmsTemplate:
    def test_no_subject(self):
        assert render(ReminderChannel.SMS, _ctx()).subject is None

    def test_single_sentence_with_opt_out(self):
        body = render(ReminderChannel.SMS, _ctx()).body
        assert "\n" not in body
        assert "Application for Rural Health Innovation is due in 7 days" in body
        assert "Reply STOP" in body
        assert UNSUBSCRIBE in body


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------

class TestPreview:
    def test_short_body_unchanged(self):
        assert preview("Short") == "Short"

    def test_empty_body(self):
        assert preview("") == ""

    def test_long_body_truncated(self):
        assert len(preview("x" * 500)) == PREVIEW_LENGTH

    def test_rendered_preview_is_prefix_of_body(self):
        rendered = render(ReminderChannel.EMAIL, _ctx())
        assert len(rendered.preview) <= PREVIEW_LENGTH
        assert rendered.body.startswith(rendered.preview)


def test_unknown_channel_rejected():
    with pytest.raises(ValueError):
        render("fax", _ctx())
