"""Configuration management for the grant tracker backend."""

import json
from pathlib import Path
from typing import Optional

import yaml
from pydantic_settings import BaseSettings

from ..models.org_preferences import DEFAULT_UNSUBSCRIBE_URL, OrgPreferences


REQUIRED_VARS = [
    "SUPABASE_URL",
    "SUPABASE_KEY",
]


class Config(BaseSettings):
    """Application configuration from environment variables."""

    # Required
    supabase_url: str
    supabase_key: str

    # Optional
    org_id: str = "demo-org"
    calendar_ics_secret: Optional[str] = None
    reminder_webhook_url: Optional[str] = None
    dispatch_interval_minutes: int = 5
    dispatch_batch_size: int = 25
    default_timezone: str = "UTC"
    unsubscribe_url: str = DEFAULT_UNSUBSCRIBE_URL
    org_preferences_path: Optional[str] = None
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": False}


def validate_config() -> Config:
    """Load and validate configuration from environment.

    Raises ValueError with descriptive message listing ALL missing
    required variables (not just the first one).
    """
    try:
        return Config()  # type: ignore[call-arg]
    except Exception as exc:
        missing = []
        err_str = str(exc)
        for var in REQUIRED_VARS:
            if var.lower() in err_str.lower():
                missing.append(var)
        if missing:
            names = ", ".join(missing)
            raise ValueError(
                f"Missing required environment variable(s): {names}. "
                "Please set them in your .env file or environment."
            ) from exc
        raise


def load_config() -> Config:
    """Load configuration from environment (startup entry point)."""
    return validate_config()


def load_org_preferences(filepath: Optional[str], config: Optional[Config] = None) -> OrgPreferences:
    """Load org preferences from a JSON or YAML file.

    Used when the org_preferences table has no row for the org. Without a
    file, defaults come from ``config`` (timezone, unsubscribe URL, ICS secret).

    Raises:
        FileNotFoundError: If filepath provided but doesn't exist
        ValueError: If the file extension is unsupported
    """
    if not filepath:
        if config is None:
            return OrgPreferences()
        return OrgPreferences(
            timezone=config.default_timezone,
            unsubscribe_url=config.unsubscribe_url,
            calendar={"ics_secret": config.calendar_ics_secret},
        )

    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Preferences file not found: {filepath}")

    if path.suffix == ".json":
        with open(path, "r") as f:
            data = json.load(f)
    elif path.suffix in [".yaml", ".yml"]:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}. Use .json, .yaml, or .yml")

    return OrgPreferences(**(data or {}))
