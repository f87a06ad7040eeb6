from .config import Config, load_config, load_org_preferences, validate_config

__all__ = ["Config", "load_config", "load_org_preferences", "validate_config"]
