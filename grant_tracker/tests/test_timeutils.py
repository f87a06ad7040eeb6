"""Tests for reminders.timeutils: send instants, display formatting, offset labels."""

from datetime import date, datetime, timezone

import pytest

from grant_tracker.reminders.timeutils import (
    DUE_HOUR,
    InvalidTimezoneError,
    compute_send_instant,
    describe_offset,
    format_in_timezone,
    resolve_timezone,
)


# ---------------------------------------------------------------------------
# compute_send_instant
# ---------------------------------------------------------------------------

class TestComputeSendInstant:
    def test_offset_zero_is_due_hour_utc(self):
        result = compute_send_instant(date(2024, 12, 31), 0, "UTC")
        assert result == datetime(2024, 12, 31, DUE_HOUR, tzinfo=timezone.utc)

    def test_offset_thirty_is_thirty_days_earlier(self):
        result = compute_send_instant(date(2024, 12, 31), 30, "UTC")
        assert result == datetime(2024, 12, 1, 14, tzinfo=timezone.utc)

    def test_result_is_utc_aware(self):
        result = compute_send_instant(date(2024, 6, 30), 1, "America/New_York")
        assert result.tzinfo == timezone.utc

    def test_local_due_hour_in_named_zone(self):
        # EDT is UTC-4 in June
        result = compute_send_instant(date(2024, 6, 30), 0, "America/New_York")
        assert result == datetime(2024, 6, 30, 18, tzinfo=timezone.utc)

    def test_same_local_hour_across_dst(self):
        # Due after the November fall-back, reminder sent before it.
        due = compute_send_instant(date(2024, 11, 5), 0, "America/New_York")
        early = compute_send_instant(date(2024, 11, 5), 7, "America/New_York")
        assert due == datetime(2024, 11, 5, 19, tzinfo=timezone.utc)  # EST, UTC-5
        assert early == datetime(2024, 10, 29, 18, tzinfo=timezone.utc)  # EDT, UTC-4

    def test_negative_offset_rejected(self):
        with pytest.raises(ValueError):
            compute_send_instant(date(2024, 12, 31), -1, "UTC")

    def test_invalid_timezone_raises(self):
        with pytest.raises(InvalidTimezoneError):
            compute_send_instant(date(2024, 12, 31), 0, "Mars/Olympus_Mons")


class TestResolveTimezone:
    def test_known_zone(self):
        assert resolve_timezone("Europe/Berlin").key == "Europe/Berlin"

    def test_empty_name_is_invalid(self):
        with pytest.raises(InvalidTimezoneError):
            resolve_timezone("")

    @pytest.mark.parametrize("name", ["America", "Europe"])
    def test_zone_directory_is_invalid(self, name):
        with pytest.raises(InvalidTimezoneError):
            resolve_timezone(name)


# ---------------------------------------------------------------------------
# format_in_timezone
# ---------------------------------------------------------------------------

class TestFormatInTimezone:
    def test_formats_utc_instant(self):
        instant = datetime(2024, 6, 30, 14, 0, tzinfo=timezone.utc)
        assert format_in_timezone(instant, "UTC") == "Jun 30, 2024, 2:00 PM"

    def test_converts_to_local_zone(self):
        instant = datetime(2024, 6, 30, 18, 0, tzinfo=timezone.utc)
        assert format_in_timezone(instant, "America/New_York") == "Jun 30, 2024, 2:00 PM"

    def test_accepts_iso_string(self):
        assert format_in_timezone("2024-01-05T09:30:00Z", "UTC") == "Jan 5, 2024, 9:30 AM"

    def test_invalid_timezone_returns_fallback(self):
        instant = datetime(2024, 6, 30, 14, tzinfo=timezone.utc)
        assert format_in_timezone(instant, "Not/AZone", fallback="2024-06-30") == "2024-06-30"

    def test_invalid_timezone_without_fallback_returns_iso(self):
        instant = datetime(2024, 6, 30, 14, tzinfo=timezone.utc)
        assert format_in_timezone(instant, "Not/AZone") == instant.isoformat()

    def test_unparseable_string_never_raises(self):
        assert format_in_timezone("not-a-date", "UTC") == "not-a-date"

    def test_zone_directory_returns_fallback(self):
        instant = datetime(2024, 6, 30, 14, tzinfo=timezone.utc)
        assert format_in_timezone(instant, "America", fallback="FB") == "FB"

    def test_midnight_is_twelve_am(self):
        instant = datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc)
        assert format_in_timezone(instant, "UTC") == "Mar 1, 2024, 12:00 AM"


# ---------------------------------------------------------------------------
# describe_offset
# ---------------------------------------------------------------------------

class TestDescribeOffset:
    @pytest.mark.parametrize(
        "offset, label",
        [(0, "today"), (1, "tomorrow"), (5, "in 5 days"), (30, "in 30 days")],
    )
    def test_labels(self, offset, label):
        assert describe_offset(offset) == label
