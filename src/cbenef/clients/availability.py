"""
Source availability checks.
"""
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Optional
import time
from loguru import logger

from cbenef.models import Settings
from .http_client import CBenefHttpClient


class AvailabilityClient:
    """Lightweight probes against a state's configured source URL. Never raises."""

    HEALTH_PROBE_TIMEOUT_MS = 5000
    HEALTHY_RESPONSE_SECONDS = 10.0

    def __init__(self, http_client: CBenefHttpClient, settings: Settings):
        self.http_client = http_client
        self.settings = settings

    def check_source_availability(self, state_code: str) -> bool:
        source_url = self.settings.get_source_url(state_code)
        if not source_url:
            return False
        try:
            response = self.http_client.send_probe(source_url)
            return 200 <= response.status_code <= 299
        except Exception as e:
            logger.warning(f"Availability check failed for {state_code} ({source_url}): {e}")
            return False

    def get_last_modified(self, state_code: str) -> Optional[datetime]:
        """Parse the Last-Modified header of the source, if present"""
        source_url = self.settings.get_source_url(state_code)
        if not source_url:
            return None
        try:
            response = self.http_client.send_probe(source_url)
            header = response.headers.get("Last-Modified")
            if not header:
                return None
            return parsedate_to_datetime(header)
        except Exception as e:
            logger.debug(f"Could not read Last-Modified for {state_code}: {e}")
            return None

    def is_source_healthy(self, state_code: str) -> bool:
        """Available and answering quickly enough"""
        source_url = self.settings.get_source_url(state_code)
        if not source_url:
            return False
        try:
            start = time.monotonic()
            response = self.http_client.send_probe(source_url, timeout=self.HEALTH_PROBE_TIMEOUT_MS)
            elapsed = time.monotonic() - start
            return 200 <= response.status_code <= 299 and elapsed < self.HEALTHY_RESPONSE_SECONDS
        except Exception as e:
            logger.warning(f"Health check failed for {state_code}: {e}")
            return False
