"""
Profile sync coordinator.

Validates a link/refresh request, enforces in-flight exclusion and the
per-platform cooldown, fetches through the platform adapter and applies the
result together with the user's recomputed aggregate in one transaction.
Nothing is written unless the fetch either succeeds or is throttled by the
platform, in which case only the cooldown bookkeeping is stored.
"""

import asyncio
import dataclasses
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from codetrack.config import Config
from codetrack.constants import SyncConstants
from codetrack.data_models.platform_stats import PlatformStats, stats_from_profile
from codetrack.data_models.profile import SyncOutcome, SyncResult, Totals
from codetrack.database.models import Platform
from codetrack.platforms.base import PlatformNotFound, PlatformRateLimited, PlatformUnavailable
from codetrack.platforms.registry import PlatformInfo, get_platform_info
from codetrack.services import score_aggregator
from codetrack.services.cooldown import CooldownGuard
from codetrack.services.sync_locks import InMemoryInFlightLocks, sync_key
from codetrack.utils.clock import utcnow
from codetrack.utils.exceptions import (
    CodeTrackException, ValidationError, UserNotFoundError, NotFoundError,
    RateLimitedError, ConcurrencyConflict, TransientError, DatabaseError
)

logger = logging.getLogger(__name__)


class ProfileSyncCoordinator:
    """Links and refreshes platform profiles for users."""

    def __init__(
        self,
        db,
        adapters: Dict[Platform, object],
        locks=None,
        clock: Callable[[], datetime] = utcnow,
        fetch_timeout: Optional[float] = None,
        cooldown_seconds: Optional[int] = None
    ):
        self.db = db
        self.adapters = adapters
        self.locks = locks if locks is not None else InMemoryInFlightLocks()
        self.clock = clock
        self.fetch_timeout = fetch_timeout or Config.FETCH_TIMEOUT_SECONDS
        self.cooldown_seconds = cooldown_seconds or Config.SYNC_COOLDOWN_SECONDS
        self.guard = CooldownGuard(db, clock=clock, default_cooldown=self.cooldown_seconds)

    # Validation

    @staticmethod
    def _resolve_platform(platform_key) -> PlatformInfo:
        try:
            return get_platform_info(platform_key)
        except (ValueError, KeyError):
            raise ValidationError(f"Unsupported platform: {platform_key}")

    def _validate(self, platform_key, username: Optional[str]):
        username = (username or '').strip()
        if not username:
            raise ValidationError("Username is required")
        info = self._resolve_platform(platform_key)
        if not info.is_valid_username(username):
            raise ValidationError(f"Invalid {info.display_name} username: {username}")
        return info, username

    async def _require_user(self, user_id: int):
        user = await self.db.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    # Sync

    async def sync(self, user_id: int, platform_key, username: str) -> SyncResult:
        """Link or refresh one platform profile for a user."""
        info, username = self._validate(platform_key, username)
        await self._require_user(user_id)
        platform = info.platform

        key = sync_key(user_id, platform.value)
        if not await self.locks.acquire(key):
            remaining = await self.locks.remaining_seconds(key)
            logger.info(f"Rejected concurrent {platform.value} sync for user {user_id}")
            raise ConcurrencyConflict(max(1, remaining), platform.value)

        try:
            status = await self.guard.check(user_id, platform)
            if not status.allowed:
                raise RateLimitedError(status.remaining_seconds, platform.value)

            stats = await self._fetch(user_id, info, username)
            return await self._apply(user_id, platform, username, stats)
        finally:
            await self.locks.release(key)

    async def _fetch(self, user_id: int, info: PlatformInfo, username: str) -> PlatformStats:
        platform = info.platform
        adapter = self.adapters[platform]
        try:
            return await adapter.fetch(username, timeout=self.fetch_timeout)
        except PlatformNotFound as e:
            logger.info(f"{info.display_name} user {username} not found (user {user_id})")
            raise NotFoundError(platform.value, username, info.hint) from e
        except PlatformRateLimited as e:
            await self._charge_platform_cooldown(user_id, platform, e)
            raise RateLimitedError(e.retry_after, platform.value, reason=str(e)) from e
        except PlatformUnavailable as e:
            logger.warning(f"Transient {platform.value} failure for {username}: {e}")
            raise TransientError(platform.value, str(e)) from e

    async def _charge_platform_cooldown(self, user_id: int, platform: Platform, error: PlatformRateLimited):
        """Record the platform's retry-after as our cooldown; stats stay untouched."""
        now = self.clock()
        await self.db.upsert_platform_profile(
            user_id,
            platform,
            last_update_attempt=now,
            cooldown_seconds=error.retry_after,
            last_update_status=SyncConstants.STATUS_RATE_LIMITED,
            last_update_error=str(error)[:500]
        )
        logger.warning(
            f"{platform.value} throttled sync for user {user_id}; cooldown set to {error.retry_after}s"
        )

    async def _apply(self, user_id: int, platform: Platform, username: str, stats: PlatformStats) -> SyncResult:
        now = self.clock()
        stats = dataclasses.replace(stats, last_updated=now)
        try:
            async with self.db.transaction() as session:
                profile = await self.db.upsert_platform_profile(
                    user_id,
                    platform,
                    session=session,
                    username=username,
                    score=stats.score,
                    problems_solved=stats.problems_solved,
                    rating=stats.rating,
                    contests_participated=stats.contests_participated,
                    details=stats.details(),
                    last_updated=now,
                    last_update_attempt=now,
                    cooldown_seconds=self.cooldown_seconds,
                    last_update_status=SyncConstants.STATUS_SUCCESS,
                    last_update_error=None
                )
                profile.update_attempts = (profile.update_attempts or 0) + 1
                totals = await self._recompute(user_id, session, synced_at=now)
        except SQLAlchemyError as e:
            logger.error(f"Failed to store {platform.value} sync for user {user_id}: {e}")
            raise DatabaseError(f"{platform.value} profile sync", str(e)) from e

        logger.info(
            f"Synced {platform.value} for user {user_id} as {username}: "
            f"score={stats.score}, total={totals.total_score}"
        )
        return SyncResult(
            user_id=user_id,
            platform=platform.value,
            username=username,
            stats=stats,
            totals=totals,
            synced_at=now
        )

    async def _recompute(self, user_id: int, session, synced_at: Optional[datetime] = None) -> Totals:
        profiles = await self.db.get_platform_profiles(user_id, session=session)
        totals = score_aggregator.recompute(
            {profile.platform: stats_from_profile(profile) for profile in profiles}
        )
        await self.db.update_user_aggregate(user_id, totals, synced_at=synced_at, session=session)
        return totals

    # Bulk and maintenance

    async def sync_all_for_user(self, user_id: int) -> List[SyncOutcome]:
        """Refresh every linked platform of a user; failures do not stop the others."""
        await self._require_user(user_id)
        profiles = [p for p in await self.db.get_platform_profiles(user_id) if p.is_linked]
        outcomes = []
        for profile in profiles:
            try:
                result = await self.sync(user_id, profile.platform, profile.username)
                outcomes.append(SyncOutcome(profile.platform, profile.username, result=result))
            except RateLimitedError as e:
                outcomes.append(SyncOutcome(
                    profile.platform, profile.username,
                    error=e.user_message, remaining_seconds=e.remaining_seconds
                ))
            except CodeTrackException as e:
                outcomes.append(SyncOutcome(profile.platform, profile.username, error=e.user_message))
        return outcomes

    async def sync_all_users(self, batch_size: Optional[int] = None) -> dict:
        """Bulk refresh of every non-admin user, a batch of users at a time."""
        batch_size = batch_size or Config.SYNC_BATCH_SIZE
        user_ids = await self.db.get_user_ids(include_admins=False)
        summary = {'users': len(user_ids), 'profiles': 0, 'succeeded': 0, 'failed': 0, 'usersFailed': 0}

        for start in range(0, len(user_ids), batch_size):
            batch = user_ids[start:start + batch_size]
            logger.info(f"Refreshing users {start + 1}-{start + len(batch)} of {len(user_ids)}")
            results = await asyncio.gather(
                *(self.sync_all_for_user(uid) for uid in batch), return_exceptions=True
            )
            for user_id, outcomes in zip(batch, results):
                if isinstance(outcomes, BaseException):
                    if not isinstance(outcomes, Exception):
                        raise outcomes
                    logger.error(f"Bulk refresh failed for user {user_id}: {outcomes!r}")
                    summary['usersFailed'] += 1
                    continue
                summary['profiles'] += len(outcomes)
                summary['succeeded'] += sum(1 for o in outcomes if o.succeeded)
                summary['failed'] += sum(1 for o in outcomes if not o.succeeded)

        logger.info(
            f"Bulk refresh finished: {summary['succeeded']}/{summary['profiles']} profiles updated"
        )
        return summary

    async def unlink(self, user_id: int, platform_key) -> Totals:
        """Clear a linked profile's username and stats; the row and its cooldown stay."""
        info = self._resolve_platform(platform_key)
        await self._require_user(user_id)
        platform = info.platform

        key = sync_key(user_id, platform.value)
        if not await self.locks.acquire(key):
            raise ConcurrencyConflict(max(1, await self.locks.remaining_seconds(key)), platform.value)
        try:
            async with self.db.transaction() as session:
                profile = await self.db.get_platform_profile(user_id, platform, session=session)
                if profile is None or not profile.is_linked:
                    raise ValidationError(f"No {info.display_name} profile is linked")
                await self.db.upsert_platform_profile(
                    user_id,
                    platform,
                    session=session,
                    username='',
                    score=0,
                    problems_solved=0,
                    rating=0,
                    contests_participated=0,
                    details=None,
                    last_updated=None,
                    last_update_status=SyncConstants.STATUS_CLEARED,
                    last_update_error=None
                )
                totals = await self._recompute(user_id, session)
        finally:
            await self.locks.release(key)

        logger.info(f"Unlinked {platform.value} for user {user_id}")
        return totals

    async def recompute_user_totals(self, user_id: int) -> Totals:
        await self._require_user(user_id)
        async with self.db.transaction() as session:
            return await self._recompute(user_id, session)

    async def list_profiles(self, user_id: int) -> List[dict]:
        """Stored profiles of a user with stats and cooldown state."""
        await self._require_user(user_id)
        profiles = await self.db.get_platform_profiles(user_id)
        now = self.clock()
        listing = []
        for profile in profiles:
            info = get_platform_info(profile.platform)
            cooldown = self.guard.evaluate(profile.last_update_attempt, profile.cooldown_seconds, now)
            listing.append({
                'platform': profile.platform,
                'displayName': info.display_name,
                'username': profile.username,
                'linked': profile.is_linked,
                'stats': stats_from_profile(profile).to_dict(),
                'lastUpdated': profile.last_updated.isoformat() if profile.last_updated else None,
                'lastUpdateStatus': profile.last_update_status,
                'lastUpdateError': profile.last_update_error,
                'updateAttempts': profile.update_attempts,
                'cooldownRemaining': cooldown.remaining_seconds,
            })
        return listing
