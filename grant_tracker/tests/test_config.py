"""Tests for configuration validation and org preference files."""

import json
import os
from unittest.mock import patch

import pytest

from grant_tracker.config.config import Config, load_org_preferences, validate_config
from grant_tracker.models import ReminderChannel


class TestConfigValidation:
    """Test startup config validation."""

    VALID_ENV = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "test-key-123",
        "REMINDER_WEBHOOK_URL": "https://hooks.example.org/reminders",
        "DISPATCH_INTERVAL_MINUTES": "10",
        "DEFAULT_TIMEZONE": "America/Denver",
        "LOG_LEVEL": "DEBUG",
    }

    def test_valid_config_loads_successfully(self):
        """All required vars present -> Config loads without error."""
        with patch.dict(os.environ, self.VALID_ENV, clear=False):
            config = validate_config()
            assert config.supabase_url == "https://test.supabase.co"
            assert config.supabase_key == "test-key-123"
            assert config.reminder_webhook_url == "https://hooks.example.org/reminders"
            assert config.dispatch_interval_minutes == 10
            assert config.default_timezone == "America/Denver"
            assert config.log_level == "DEBUG"

    def test_defaults(self):
        env = {"SUPABASE_URL": "https://x.supabase.co", "SUPABASE_KEY": "k"}
        with patch.dict(os.environ, env, clear=True):
            config = Config(_env_file=None)
            assert config.dispatch_batch_size == 25
            assert config.dispatch_interval_minutes == 5
            assert config.reminder_webhook_url is None

    def test_missing_required_vars_listed(self):
        """Missing required vars -> ValueError naming every one of them."""
        with patch.dict(os.environ, {}, clear=True), \
                patch.dict(Config.model_config, {"env_file": None}):
            with pytest.raises(ValueError) as exc_info:
                validate_config()

        message = str(exc_info.value)
        assert "SUPABASE_URL" in message
        assert "SUPABASE_KEY" in message


# ---------------------------------------------------------------------------
# Org preference files
# ---------------------------------------------------------------------------

class TestLoadOrgPreferences:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "prefs.yaml"
        path.write_text(
            "timezone: Europe/London\n"
            "reminder_channels: [email, sms]\n"
            "calendar:\n"
            "  ics_secret: s3cret\n"
        )
        prefs = load_org_preferences(str(path))
        assert prefs.timezone == "Europe/London"
        assert prefs.reminder_channels == [ReminderChannel.EMAIL, ReminderChannel.SMS]
        assert prefs.calendar.ics_secret == "s3cret"

    def test_json_file(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text(json.dumps({"timezone": "Asia/Tokyo", "states": ["HI"]}))
        prefs = load_org_preferences(str(path))
        assert prefs.timezone == "Asia/Tokyo"
        assert prefs.states == ["HI"]

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "prefs.yml"
        path.write_text("")
        assert load_org_preferences(str(path)).timezone == "UTC"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_org_preferences(str(tmp_path / "absent.yaml"))

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "prefs.toml"
        path.write_text("timezone = 'UTC'")
        with pytest.raises(ValueError):
            load_org_preferences(str(path))

    def test_no_path_uses_config_defaults(self):
        config = Config(
            _env_file=None,
            supabase_url="https://x.supabase.co",
            supabase_key="k",
            default_timezone="America/Chicago",
            calendar_ics_secret="from-env",
        )
        prefs = load_org_preferences(None, config)
        assert prefs.timezone == "America/Chicago"
        assert prefs.calendar.ics_secret == "from-env"
