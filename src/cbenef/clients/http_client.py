"""
Thin HTTP transport over one requests session per thread.
"""
from typing import Dict, Optional
import threading
import requests
from loguru import logger

from cbenef.models import ConnectionConfig


class CBenefHttpClient:
    """
    Sends GET/HEAD requests with the library's User-Agent and per-call
    connect/read timeouts. Timeouts are given in milliseconds.

    Extractions run on a thread pool, so each worker thread gets its own
    session. An injected session is used as-is by every thread.
    """

    SUPPORTED_METHODS = ("GET", "HEAD")

    def __init__(self, connection: ConnectionConfig, session: Optional[requests.Session] = None):
        self.connection = connection
        self._shared_session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            logger.debug(f"Opened HTTP session for thread {threading.current_thread().name}")
        return session

    def _build_headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        merged = {"User-Agent": self.connection.user_agent}
        merged.update(headers or {})
        return merged

    def send_request(self,
                     url: str,
                     method: str = "GET",
                     headers: Optional[Dict[str, str]] = None,
                     timeout: Optional[int] = None,
                     connect_timeout: Optional[int] = None) -> requests.Response:
        """
        Send a request and return the response with its body loaded.

        Args:
            url: Target URL
            method: GET or HEAD
            headers: Extra headers (override the defaults)
            timeout: Read timeout in ms (defaults to connection.read_timeout)
            connect_timeout: Connect timeout in ms (defaults to connection.timeout)
        """
        method = method.upper()
        if method not in self.SUPPORTED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        read_ms = timeout if timeout is not None else self.connection.read_timeout
        connect_ms = connect_timeout if connect_timeout is not None else self.connection.timeout

        logger.debug(f"{method} {url} (connect={connect_ms}ms, read={read_ms}ms)")
        return self.session.request(
            method,
            url,
            headers=self._build_headers(headers),
            timeout=(connect_ms / 1000, read_ms / 1000),
            allow_redirects=True
        )

    def send_probe(self,
                   url: str,
                   headers: Optional[Dict[str, str]] = None,
                   timeout: int = 10000) -> requests.Response:
        """
        GET without reading the body. Status and headers stay available on
        the returned (already closed) response.
        """
        response = self.session.get(
            url,
            headers=self._build_headers(headers),
            timeout=(self.connection.timeout / 1000, timeout / 1000),
            allow_redirects=True,
            stream=True
        )
        response.close()
        return response
