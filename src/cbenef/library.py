"""
CBenef library facade - single entry point for callers.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional
from loguru import logger

from cbenef.models import BenefitRecord, ExtractionResult, Settings
from cbenef.clients import CBenefHttpClient
from cbenef.core import ExtractorFactory, text_of
from cbenef.core.extractor import TextConverter
from cbenef.services import CacheService, IntegrationService, SearchService, SyncService


def _successful_records(results: Dict[str, ExtractionResult]) -> List[BenefitRecord]:
    records: List[BenefitRecord] = []
    for state_code in sorted(results):
        result = results[state_code]
        if result.is_success():
            records.extend(result.records)
    return records


class CBenefLibrary:
    """
    Extract, cache and search CBenef benefit codes of the configured states.

    Usage:
        with CBenefLibrary.from_config_file("config/settings.toml") as library:
            library.search_benefits(description="leite")
    """

    def __init__(self,
                 settings: Settings,
                 integration: IntegrationService,
                 cache: Optional[CacheService] = None):
        self.settings = settings
        self.integration = integration
        self.cache = cache
        self.search_service = SearchService(integration, cache)
        self.sync_service = SyncService(integration, settings, cache)

    @classmethod
    def from_settings(cls,
                      settings: Optional[Settings] = None,
                      http_client: Optional[CBenefHttpClient] = None,
                      text_converter: TextConverter = text_of) -> "CBenefLibrary":
        """Wire the library; the cache exists only when caching is enabled"""
        settings = settings or Settings()
        workers = settings.connection.max_concurrent_extractions

        factory = ExtractorFactory(settings, http_client, text_converter=text_converter)
        integration = IntegrationService(factory, max_workers=workers)
        cache = CacheService(integration, settings, max_workers=workers) if settings.is_cache_enabled() else None

        library = cls(settings, integration, cache)
        logger.info(f"CBenef library ready (states: {', '.join(library.get_available_states()) or 'none'}, "
                    f"cache: {'on' if cache else 'off'})")

        if settings.sync.enabled and settings.sync.initial_sync:
            library.sync()
        return library

    @classmethod
    def from_config_file(cls, config_path) -> "CBenefLibrary":
        return cls.from_settings(Settings.load_from_toml(Path(config_path)))

    # ==================== EXTRACTION ====================
    def extract_all_benefits(self, use_cache: bool = True) -> List[BenefitRecord]:
        if use_cache and self.cache is not None:
            results = self.cache.get_all_states()
        else:
            results = self.integration.extract_all_states()
        return _successful_records(results)

    def extract_benefits_by_state(self, state_code: str, use_cache: bool = True) -> List[BenefitRecord]:
        if use_cache and self.cache is not None:
            result = self.cache.get_by_state(state_code)
        else:
            result = self.integration.extract_by_state(state_code)
        if result is None or not result.is_success():
            return []
        return list(result.records)

    # ==================== SEARCH ====================
    def search_benefits(self,
                        code: Optional[str] = None,
                        description: Optional[str] = None,
                        state_code: Optional[str] = None,
                        active_only: bool = True) -> List[BenefitRecord]:
        return self.search_service.search(code, description, state_code, active_only)

    def find_benefit_by_code(self, full_code: str) -> Optional[BenefitRecord]:
        return self.search_service.find_by_full_code(full_code)

    def get_available_states(self) -> List[str]:
        return self.integration.get_available_states()

    # ==================== CACHE ====================
    def is_cache_enabled(self) -> bool:
        return self.cache is not None

    def get_cache_stats(self) -> Optional[Dict[str, Any]]:
        if self.cache is None:
            return None
        return self.cache.get_stats()

    def clear_cache(self) -> bool:
        if self.cache is None:
            return False
        self.cache.clear()
        return True

    def get_from_cache_by_state(self, state_code: str) -> List[BenefitRecord]:
        if self.cache is None:
            return []
        result = self.cache.get_by_state(state_code)
        if result is None or not result.is_success():
            return []
        return list(result.records)

    def get_all_from_cache(self) -> List[BenefitRecord]:
        if self.cache is None:
            return []
        return _successful_records(self.cache.get_all_states())

    # ==================== SOURCES ====================
    def check_availability(self, state_code: str) -> bool:
        extractor = self.integration.factory.create_extractor(state_code)
        return extractor.is_source_available() if extractor is not None else False

    def get_extractor_info(self, state_code: str) -> Optional[Dict[str, Any]]:
        return self.integration.get_extractor_info(state_code)

    def sync(self) -> Dict[str, ExtractionResult]:
        return self.sync_service.run()

    # ==================== LIFECYCLE ====================
    def start(self):
        """Start the periodic cache sweep (no-op without a cache)"""
        if self.cache is not None:
            self.cache.start_cleanup()

    def close(self):
        if self.cache is not None:
            self.cache.stop_cleanup()

    def __enter__(self) -> "CBenefLibrary":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
