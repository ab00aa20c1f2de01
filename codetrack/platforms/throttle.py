"""
Outbound request throttle.

Keeps a minimum interval between consecutive requests to the same platform so
bulk refreshes do not get our IP blocked.
"""

import asyncio
import time
import logging
from collections import defaultdict
from typing import Dict

from codetrack.database.models import Platform

logger = logging.getLogger(__name__)


class PlatformThrottle:
    """Per-platform minimum spacing between outgoing requests."""

    def __init__(self, intervals: Dict[Platform, float]):
        self._intervals = dict(intervals)
        self._last_request: Dict[Platform, float] = {}
        self._locks = defaultdict(asyncio.Lock)  # One lock per platform

    async def wait(self, platform: Platform) -> float:
        """Sleep until the platform may be called again. Returns the delay applied."""
        interval = self._intervals.get(platform, 1.0)
        async with self._locks[platform]:
            now = time.monotonic()
            last = self._last_request.get(platform)
            delay = 0.0
            if last is not None and now - last < interval:
                delay = interval - (now - last)
                logger.debug(f"Waiting {delay:.2f}s before next {platform.value} request")
                await asyncio.sleep(delay)
            self._last_request[platform] = time.monotonic()
            return delay
