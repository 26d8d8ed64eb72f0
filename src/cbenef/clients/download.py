"""
Source document download with bounded retries and URL fallback.
"""
from typing import Callable, Dict, List, Optional
import time
from loguru import logger
from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_incrementing

from cbenef.models import Settings
from cbenef.exceptions import SourceUnavailableError
from .http_client import CBenefHttpClient


class DownloadClient:
    """
    Downloads a state's source document.

    Every URL (primary first, then the configured fallbacks) gets up to
    max_retries attempts with a linear backoff of retry_delay * attempt
    between them. Worst case is max_retries * number_of_urls requests.
    """

    def __init__(self, http_client: CBenefHttpClient, settings: Settings):
        self.http_client = http_client
        self.settings = settings

    def _urls_to_try(self, state_code: str, source_url: str) -> List[str]:
        return [source_url] + self.settings.get_fallback_urls(state_code)

    def download_document(self, state_code: str) -> bytes:
        """
        Download the raw document bytes.

        Raises:
            SourceUnavailableError: no URL returned a 2xx response
        """
        source_url = self.settings.get_source_url(state_code)
        if not source_url:
            raise SourceUnavailableError(state_code, "N/A", "Source URL not configured")

        max_retries = self.settings.get_max_retries(state_code)
        headers = self.settings.get_custom_headers(state_code)
        read_timeout = self.settings.get_read_timeout(state_code)
        connect_timeout = self.settings.get_connection_timeout(state_code)
        retry_delay = self.settings.connection.retry_delay / 1000

        attempts = 0
        last_error: Optional[Exception] = None

        for url in self._urls_to_try(state_code, source_url):
            retrying = Retrying(
                stop=stop_after_attempt(max_retries),
                wait=wait_incrementing(start=retry_delay, increment=retry_delay),
                after=self._log_failed_attempt(state_code, url, max_retries),
                sleep=time.sleep,
                reraise=True
            )
            tried = 0
            try:
                for attempt in retrying:
                    with attempt:
                        tried = attempt.retry_state.attempt_number
                        content = self._fetch(url, headers, read_timeout, connect_timeout)
                        logger.info(f"Downloaded {state_code} document from {url} "
                                    f"({len(content)} bytes, attempt {tried})")
                        return content
            except Exception as e:
                attempts += tried
                last_error = e

        raise SourceUnavailableError(
            state_code,
            source_url,
            f"Failed after {attempts} attempts: {last_error}",
            attempts=attempts
        )

    def _fetch(self, url: str, headers: Dict[str, str], read_timeout: int, connect_timeout: int) -> bytes:
        response = self.http_client.send_request(
            url,
            headers=headers,
            timeout=read_timeout,
            connect_timeout=connect_timeout
        )
        if not 200 <= response.status_code <= 299:
            raise IOError(f"HTTP {response.status_code}")
        return response.content

    @staticmethod
    def _log_failed_attempt(state_code: str, url: str, max_retries: int) -> Callable[[RetryCallState], None]:
        def log(retry_state: RetryCallState) -> None:
            logger.warning(f"Download attempt {retry_state.attempt_number}/{max_retries} for {state_code} "
                           f"failed ({url}): {retry_state.outcome.exception()}")
        return log
