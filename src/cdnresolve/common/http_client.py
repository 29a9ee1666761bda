"""HTTP transports used to reach CDNs.

Two implementations of the same small contract, ``get(url, headers_only,
headers) -> TransportResponse``: an aiohttp session for normal builds and
a requests session run in worker threads, with retries, for hosts where
an event-loop-native client is unwanted. Transport-level failures surface
as ``TransportError``; HTTP statuses are returned, never raised.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

import aiohttp
import requests

from cdnresolve.common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from cdnresolve.constants import Constants
from cdnresolve.errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    """Status, lower-cased headers and body of one response."""

    status: int
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def _lower_headers(headers) -> Dict[str, str]:
    return {str(k).lower(): str(v) for k, v in headers.items()}


class AiohttpTransport:
    """Async transport backed by a shared ``aiohttp.ClientSession``."""

    def __init__(
        self,
        timeout: int = Constants.REQUEST_TIMEOUT,
        max_connections: int = 100,
        user_agent: str = Constants.USER_AGENT,
    ):
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_connections = max_connections
        self._user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=self._max_connections)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers={"User-Agent": self._user_agent},
            )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def get(
        self,
        url: str,
        *,
        headers_only: bool = False,
        headers: Optional[Dict[str, str]] = None,
    ) -> TransportResponse:
        """Issue a GET (or HEAD when ``headers_only``), following redirects."""
        if self._session is None:
            await self.start()
        assert self._session is not None
        method = "HEAD" if headers_only else "GET"
        safe_target = safe_url(url)
        request_headers = {"User-Agent": self._user_agent, **(headers or {})}

        with Timer() as t:
            try:
                async with self._session.request(
                    method, url, headers=headers, allow_redirects=True
                ) as response:
                    body = b"" if headers_only else await response.read()
                    result = TransportResponse(
                        status=response.status,
                        url=str(response.url),
                        headers=_lower_headers(response.headers),
                        body=body,
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                logger.debug(
                    "HTTP request exception",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action=method,
                        outcome="client_error",
                        target=safe_target,
                    ),
                )
                raise TransportError(f"{method} {safe_target} failed: {exc!r}") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action=method,
                    status_code=result.status,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                ),
            )
        return result

    async def __aenter__(self) -> "AiohttpTransport":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class RequestsTransport:
    """Transport running blocking ``requests`` calls on worker threads.

    Connection errors and timeouts are retried up to
    ``Constants.HTTP_RETRY_MAX`` times with exponential backoff.
    """

    def __init__(
        self,
        timeout: int = Constants.REQUEST_TIMEOUT,
        user_agent: str = Constants.USER_AGENT,
        retries: int = Constants.HTTP_RETRY_MAX,
    ):
        self._timeout = timeout
        self._retries = max(1, retries)
        self._user_agent = user_agent

    def _get_sync(
        self, url: str, headers_only: bool, headers: Optional[Dict[str, str]]
    ) -> TransportResponse:
        method = "HEAD" if headers_only else "GET"
        safe_target = safe_url(url)
        request_headers = {"User-Agent": self._user_agent, **(headers or {})}
        last_exception = None

        for attempt in range(self._retries):
            with Timer() as t:
                try:
                    res = requests.request(
                        method,
                        url,
                        headers=request_headers,
                        timeout=self._timeout,
                        allow_redirects=True,
                    )
                except requests.RequestException as exc:  # includes Timeout, ConnectionError
                    last_exception = exc
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action=method,
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target,
                        ),
                    )
                    if attempt + 1 < self._retries:
                        time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt))
                    continue

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action=method,
                        status_code=res.status_code,
                        duration_ms=t.duration_ms(),
                        attempt=attempt + 1,
                        target=safe_target,
                    ),
                )
            return TransportResponse(
                status=res.status_code,
                url=res.url or url,
                headers=_lower_headers(res.headers),
                body=b"" if headers_only else res.content,
            )

        raise TransportError(
            f"{method} {safe_target} failed after {self._retries} attempts: {last_exception!r}"
        )

    async def get(
        self,
        url: str,
        *,
        headers_only: bool = False,
        headers: Optional[Dict[str, str]] = None,
    ) -> TransportResponse:
        return await asyncio.to_thread(self._get_sync, url, headers_only, headers)

    async def close(self) -> None:
        """Nothing to release; each call opens its own connection."""

    async def __aenter__(self) -> "RequestsTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_transport(
    name: str = "aiohttp",
    timeout: int = Constants.REQUEST_TIMEOUT,
    max_connections: int = 100,
    user_agent: str = Constants.USER_AGENT,
):
    """Build the named transport.

    Raises:
        ValueError: For an unknown transport name.
    """
    if name == "aiohttp":
        return AiohttpTransport(timeout=timeout, max_connections=max_connections, user_agent=user_agent)
    if name == "requests":
        return RequestsTransport(timeout=timeout, user_agent=user_agent)
    raise ValueError(f"Unknown transport: {name}")
