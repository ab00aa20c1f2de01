"""
Service container shared by the HTTP routes.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import httpx

from codetrack.config import Config
from codetrack.database.database import Database
from codetrack.platforms.base import create_http_client
from codetrack.platforms.registry import build_adapters
from codetrack.services.leaderboard import LeaderboardService
from codetrack.services.profile_sync import ProfileSyncCoordinator
from codetrack.services.stats import StatsService
from codetrack.services.sync_locks import InMemoryInFlightLocks, RedisInFlightLocks
from codetrack.utils.clock import utcnow
from codetrack.utils.redis_utils import RedisUtils

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    db: Database
    profiles: ProfileSyncCoordinator
    leaderboard: LeaderboardService
    stats: StatsService
    http_client: Optional[httpx.AsyncClient] = None
    redis_client: Optional[object] = None

    @classmethod
    def build(cls, db: Database, adapters, locks=None, clock: Callable[[], datetime] = utcnow,
              http_client=None, redis_client=None) -> "AppServices":
        return cls(
            db=db,
            profiles=ProfileSyncCoordinator(db, adapters, locks=locks, clock=clock),
            leaderboard=LeaderboardService(db, clock=clock),
            stats=StatsService(db, clock=clock),
            http_client=http_client,
            redis_client=redis_client,
        )

    @classmethod
    async def start(cls) -> "AppServices":
        """Wire production services from Config."""
        Config.validate()
        db = Database()
        await db.initialize()

        http_client = create_http_client()
        redis_client = await RedisUtils.create_redis_client()
        if redis_client is not None:
            locks = RedisInFlightLocks(redis_client)
            logger.info("Using Redis for in-flight sync locks")
        else:
            locks = InMemoryInFlightLocks()

        return cls.build(
            db, build_adapters(http_client), locks=locks,
            http_client=http_client, redis_client=redis_client
        )

    async def close(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.redis_client is not None:
            await self.redis_client.aclose()
        await self.db.close()
