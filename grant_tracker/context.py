"""Process-scoped application context: configuration plus the persistence client.

Created once at startup (scheduler process or API lifespan) and passed to the
code that needs it, instead of reaching for module-level singletons.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import Config, load_config, load_org_preferences
from .database import SupabaseClient
from .models import OrgPreferences
from .store import GrantStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    config: Config
    repository: Optional[SupabaseClient]

    def preferences_for(self, org_id: str) -> OrgPreferences:
        """Stored preferences for the org, else the configured defaults."""
        stored = self.repository.fetch_org_preferences(org_id) if self.repository else None
        if stored is not None:
            return stored
        return load_org_preferences(self.config.org_preferences_path, self.config)

    def open_store(self, org_id: Optional[str] = None) -> GrantStore:
        """Build a GrantStore for the org, hydrated from persistence."""
        org_id = org_id or self.config.org_id
        store = GrantStore(org_id, preferences=self.preferences_for(org_id), repository=self.repository)
        store.hydrate()
        return store

    def close(self) -> None:
        self.repository = None
        logger.info("Application context closed")


def create_context(config: Optional[Config] = None) -> AppContext:
    config = config or load_config()
    repository = SupabaseClient(config.supabase_url, config.supabase_key)
    logger.info("Application context created for org %s", config.org_id)
    return AppContext(config=config, repository=repository)
