"""
Sync service - configured synchronisation passes over the state sources.
"""
from typing import Dict, Optional
from loguru import logger

from cbenef.models import ExtractionResult, Settings
from .integration import IntegrationService
from .cache import CacheService


class SyncService:
    def __init__(self, integration: IntegrationService, settings: Settings, cache: Optional[CacheService] = None):
        self.integration = integration
        self.settings = settings
        self.cache = cache

    def run(self) -> Dict[str, ExtractionResult]:
        """
        Synchronise the configured states.

        Goes through the cache when sync.use_cache is set and a cache
        exists, otherwise extracts directly (concurrently unless
        sync.parallel is off).
        """
        sync = self.settings.sync
        states = sync.get_states_to_sync(self.integration.get_available_states())
        if not states:
            logger.warning("No states to synchronise")
            return {}

        logger.info(f"Synchronising {len(states)} states: {', '.join(states)}")

        if sync.use_cache and self.cache is not None:
            results = self.cache.get_multiple_states(states)
        elif sync.parallel:
            results = self.integration.extract_multiple_states(states)
        else:
            results = {}
            for state_code in states:
                result = self.integration.extract_by_state(state_code)
                if result is not None:
                    results[state_code] = result

        total = sum(r.record_count for r in results.values() if r.is_success())
        failed = [s for s, r in results.items() if not r.is_success()]
        logger.info(f"Sync complete: {total} benefits from {len(results) - len(failed)} states")
        if failed:
            logger.warning(f"Sync failed for: {', '.join(sorted(failed))}")
        return results
