"""
Cache service - per-state TTL cache of successful extraction results.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from concurrent.futures import ThreadPoolExecutor
import threading
from loguru import logger

from cbenef.models import CachedResult, ExtractionResult, Settings
from .integration import IntegrationService


class CacheService:
    """
    Holds at most one successful ExtractionResult per state.

    Errors and unavailable sources are never stored, so the next call
    retries the extraction. Expired entries are dropped on access and by
    an optional periodic sweep (start_cleanup).

    A miss is check, extract, store without a lock held across the
    extraction: two concurrent misses for the same state both extract
    and the last store wins.
    """

    def __init__(self, integration: IntegrationService, settings: Settings, max_workers: int = 3):
        self.integration = integration
        self.settings = settings
        self.max_workers = max_workers

        self._cache: Dict[str, CachedResult] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._cleanup_thread: Optional[threading.Thread] = None

    # ==================== LOOKUPS ====================
    def get_by_state(self, state_code: str) -> Optional[ExtractionResult]:
        state_code = state_code.upper()
        if not self.settings.should_use_cache(state_code):
            return self.integration.extract_by_state(state_code)

        with self._lock:
            cached = self._cache.get(state_code)
            if cached is not None:
                if not cached.is_expired():
                    logger.debug(f"Cache hit for {state_code}")
                    return cached.result
                del self._cache[state_code]
                logger.info(f"Evicted expired cache entry for {state_code}")

        logger.debug(f"Cache miss for {state_code}")
        result = self.integration.extract_by_state(state_code)
        if result is not None and result.is_success():
            self._store(state_code, result)
        return result

    def get_all_states(self) -> Dict[str, ExtractionResult]:
        return self.get_multiple_states(self.integration.get_available_states())

    def get_multiple_states(self, state_codes: List[str]) -> Dict[str, ExtractionResult]:
        """Concurrent get_by_state per state; states without a result are left out"""
        results: Dict[str, ExtractionResult] = {}
        if not state_codes:
            return results

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self.get_by_state, state_code): state_code for state_code in state_codes}
            for future, state_code in futures.items():
                try:
                    result = future.result()
                except Exception as e:
                    logger.error(f"Cached lookup failed for {state_code}: {e}")
                    continue
                if result is not None:
                    results[result.state_code] = result
        return results

    def is_cached(self, state_code: str) -> bool:
        with self._lock:
            cached = self._cache.get(state_code.upper())
            return cached is not None and not cached.is_expired()

    # ==================== EVICTION ====================
    def _store(self, state_code: str, result: ExtractionResult):
        ttl_minutes = self.settings.get_cache_ttl(state_code)
        with self._lock:
            if state_code not in self._cache and len(self._cache) >= self.settings.cache.max_size:
                oldest = min(self._cache, key=lambda s: self._cache[s].cached_at)
                del self._cache[oldest]
                logger.info(f"Cache full, evicted oldest entry {oldest}")
            self._cache[state_code] = CachedResult(result=result, ttl_minutes=ttl_minutes)
        logger.info(f"Cached {result.record_count} benefits for {state_code} (TTL {ttl_minutes} min)")

    def clear(self):
        with self._lock:
            self._cache.clear()
        logger.info("Cache cleared")

    def clear_for_state(self, state_code: str):
        with self._lock:
            self._cache.pop(state_code.upper(), None)
        logger.info(f"Cache cleared for {state_code}")

    def cleanup_expired(self) -> int:
        """Remove every expired entry, returning how many were removed"""
        now = datetime.now()
        with self._lock:
            expired = [state for state, cached in self._cache.items() if cached.is_expired(now)]
            for state in expired:
                del self._cache[state]
        if expired:
            logger.info(f"Cache cleanup removed {len(expired)} expired entries: {', '.join(expired)}")
        return len(expired)

    # ==================== STATS ====================
    def get_stats(self) -> Dict[str, Any]:
        """Totals and per-entry detail over live entries"""
        now = datetime.now()
        with self._lock:
            live = {state: cached for state, cached in self._cache.items() if not cached.is_expired(now)}

        entries = [
            {
                "state": state,
                "benefitsCount": cached.result.record_count,
                "cachedAt": cached.cached_at,
                "expiresAt": cached.expires_at,
                "isExpired": cached.is_expired(now),
            }
            for state, cached in sorted(live.items())
        ]
        return {
            "totalStatesCached": len(live),
            "totalBenefitsCached": sum(cached.result.record_count for cached in live.values()),
            "cacheEntries": entries,
        }

    # ==================== PERIODIC CLEANUP ====================
    def start_cleanup(self):
        if self._cleanup_thread is not None and self._cleanup_thread.is_alive():
            return

        interval_seconds = self.settings.cache.cleanup_interval_hours * 3600
        self._stop_event.clear()
        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop,
            args=(interval_seconds,),
            name="cbenef-cache-cleanup",
            daemon=True
        )
        self._cleanup_thread.start()
        logger.info(f"Cache cleanup scheduled every {self.settings.cache.cleanup_interval_hours}h")

    def _cleanup_loop(self, interval_seconds: float):
        while not self._stop_event.wait(interval_seconds):
            try:
                self.cleanup_expired()
            except Exception as e:
                logger.error(f"Cache cleanup failed: {e}")

    def stop_cleanup(self):
        self._stop_event.set()
        if self._cleanup_thread is not None:
            self._cleanup_thread.join(timeout=5)
            self._cleanup_thread = None
