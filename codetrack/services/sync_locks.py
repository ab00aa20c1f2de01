"""
In-flight exclusion for profile syncs.

A keyed lock table: at most one sync per (user, platform) key may hold a
marker at a time. Markers expire after a TTL so a crashed worker cannot block
a key forever. Acquisition never waits; a held key is reported immediately.
"""

import asyncio
import math
import time
import uuid
import logging
from typing import Dict, Optional

from codetrack.config import Config

logger = logging.getLogger(__name__)

# Deletes the marker only if it still carries our token
RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


def sync_key(user_id: int, platform: str) -> str:
    return f"sync:{user_id}:{platform}"


class InMemoryInFlightLocks:
    """Process-local lock table."""

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = ttl_seconds or Config.INFLIGHT_LOCK_TTL_SECONDS
        self._held: Dict[str, float] = {}  # key -> expiry (monotonic)
        self._lock = asyncio.Lock()

    async def acquire(self, key: str) -> bool:
        async with self._lock:
            now = time.monotonic()
            expiry = self._held.get(key)
            if expiry is not None and expiry > now:
                return False
            self._held[key] = now + self.ttl_seconds
            return True

    async def release(self, key: str) -> None:
        async with self._lock:
            self._held.pop(key, None)

    async def remaining_seconds(self, key: str) -> int:
        async with self._lock:
            expiry = self._held.get(key)
        if expiry is None:
            return 0
        return max(0, math.ceil(expiry - time.monotonic()))


class RedisInFlightLocks:
    """Lock table shared across processes through Redis ``SET NX PX`` markers."""

    def __init__(self, client, ttl_seconds: Optional[int] = None, prefix: str = "codetrack"):
        self.client = client
        self.ttl_seconds = ttl_seconds or Config.INFLIGHT_LOCK_TTL_SECONDS
        self.prefix = prefix
        self._tokens: Dict[str, str] = {}

    def _name(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def acquire(self, key: str) -> bool:
        token = uuid.uuid4().hex
        acquired = await self.client.set(self._name(key), token, nx=True, px=self.ttl_seconds * 1000)
        if acquired:
            self._tokens[key] = token
            return True
        return False

    async def release(self, key: str) -> None:
        token = self._tokens.pop(key, None)
        if token is None:
            return
        await self.client.eval(RELEASE_SCRIPT, 1, self._name(key), token)

    async def remaining_seconds(self, key: str) -> int:
        pttl = await self.client.pttl(self._name(key))
        if pttl is None or pttl < 0:
            return 0
        return math.ceil(pttl / 1000)
