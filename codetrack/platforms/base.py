"""
Platform adapter contract and shared HTTP transport handling.

Every adapter turns a username into a normalized PlatformStats variant or
raises one of the FetchError subclasses below. Status-code classification
lives here so individual adapters only describe endpoints and payloads.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import ClassVar, FrozenSet, Optional

import httpx

from codetrack.config import Config
from codetrack.constants import SyncConstants
from codetrack.data_models.platform_stats import PlatformStats
from codetrack.database.models import Platform

logger = logging.getLogger(__name__)

USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/124.0 Safari/537.36'
)


class FetchError(Exception):
    """Base class for adapter failures."""
    def __init__(self, platform: Platform, username: str, message: str):
        super().__init__(message)
        self.platform = platform
        self.username = username


class PlatformNotFound(FetchError):
    """The platform reports no such account."""
    def __init__(self, platform: Platform, username: str):
        super().__init__(platform, username, f"User {username} not found on {platform.value}")


class PlatformRateLimited(FetchError):
    """The platform throttled us; retry_after is in seconds."""
    def __init__(self, platform: Platform, username: str, retry_after: int = SyncConstants.DEFAULT_RETRY_AFTER):
        self.retry_after = max(1, int(retry_after))
        super().__init__(
            platform, username,
            f"{platform.value} rate limit hit, retry after {self.retry_after}s"
        )


class PlatformUnavailable(FetchError):
    """Network failure, timeout or server error. Retryable."""


def parse_retry_after(value: Optional[str], default: int = SyncConstants.DEFAULT_RETRY_AFTER) -> int:
    """Parse a Retry-After header given in seconds; HTTP-dates fall back to the default."""
    if not value:
        return default
    try:
        seconds = int(float(value.strip()))
    except ValueError:
        return default
    return seconds if seconds > 0 else default


def create_http_client(timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Shared client for all adapters; one connection pool per process."""
    return httpx.AsyncClient(
        timeout=timeout or Config.FETCH_TIMEOUT_SECONDS,
        headers={'User-Agent': USER_AGENT},
        follow_redirects=True,
        transport=transport
    )


class PlatformAdapter(ABC):
    """Fetches and normalizes one platform's public profile."""

    platform: ClassVar[Platform]
    not_found_statuses: ClassVar[FrozenSet[int]] = frozenset({404})
    rate_limited_statuses: ClassVar[FrozenSet[int]] = frozenset({429})

    def __init__(self, client: httpx.AsyncClient, throttle=None):
        self.client = client
        self.throttle = throttle

    async def fetch(self, username: str, timeout: Optional[float] = None) -> PlatformStats:
        """Fetch ``username`` and return its normalized stats.

        ``timeout`` bounds the platform exchange only; time spent queued
        behind the throttle does not count against it.
        """
        if self.throttle is not None:
            await self.throttle.wait(self.platform)
        started = time.monotonic()
        try:
            stats = await asyncio.wait_for(self._fetch(username), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise PlatformUnavailable(
                self.platform, username, f"{self.platform.value} timed out after {timeout}s"
            ) from e
        logger.info(
            f"Fetched {self.platform.value} profile {username} in {time.monotonic() - started:.2f}s "
            f"(score={stats.score}, solved={stats.problems_solved})"
        )
        return stats

    @abstractmethod
    async def _fetch(self, username: str) -> PlatformStats:
        ...

    async def _request(self, method: str, url: str, username: str, **kwargs) -> httpx.Response:
        """Perform one request and map transport failures and statuses to FetchError."""
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise PlatformUnavailable(self.platform, username, f"{self.platform.value} timed out: {e}") from e
        except httpx.RequestError as e:
            raise PlatformUnavailable(self.platform, username, f"{self.platform.value} request failed: {e}") from e
        self._check_status(response, username)
        return response

    async def _get(self, url: str, username: str, **kwargs) -> httpx.Response:
        return await self._request('GET', url, username, **kwargs)

    async def _get_json(self, url: str, username: str, **kwargs):
        response = await self._get(url, username, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise PlatformUnavailable(
                self.platform, username, f"{self.platform.value} returned invalid JSON"
            ) from e

    def _check_status(self, response: httpx.Response, username: str) -> None:
        status = response.status_code
        if status in self.not_found_statuses:
            raise PlatformNotFound(self.platform, username)
        if status in self.rate_limited_statuses:
            raise PlatformRateLimited(
                self.platform, username, parse_retry_after(response.headers.get('Retry-After'))
            )
        if status >= 400:
            raise PlatformUnavailable(
                self.platform, username, f"{self.platform.value} responded with HTTP {status}"
            )


def as_int(value, default: int = 0) -> int:
    """Coerce loosely typed payload values to a non-negative int."""
    try:
        result = int(float(value))
    except (TypeError, ValueError):
        return default
    return result if result >= 0 else default
