"""
Per-(user, platform) sync cooldown.

The window is derived purely from the profile's last charged attempt and the
cooldown length stored with it. Checking never writes.
"""

import math
import logging
from datetime import datetime
from typing import Callable, Optional

from codetrack.config import Config
from codetrack.data_models.profile import CooldownStatus
from codetrack.database.models import Platform
from codetrack.utils.clock import utcnow

logger = logging.getLogger(__name__)


class CooldownGuard:
    """Answers whether a user may sync a platform right now."""

    def __init__(self, db, clock: Callable[[], datetime] = utcnow, default_cooldown: Optional[int] = None):
        self.db = db
        self.clock = clock
        self.default_cooldown = default_cooldown or Config.SYNC_COOLDOWN_SECONDS

    def evaluate(
        self,
        last_attempt: Optional[datetime],
        cooldown_seconds: Optional[int],
        now: Optional[datetime] = None
    ) -> CooldownStatus:
        """Pure cooldown arithmetic for one stored attempt."""
        if last_attempt is None:
            return CooldownStatus(allowed=True, remaining_seconds=0)
        cooldown = self.default_cooldown if cooldown_seconds is None else cooldown_seconds
        now = now or self.clock()
        elapsed = (now - last_attempt).total_seconds()
        if elapsed < cooldown:
            return CooldownStatus(allowed=False, remaining_seconds=max(1, math.ceil(cooldown - elapsed)))
        return CooldownStatus(allowed=True, remaining_seconds=0)

    async def check(self, user_id: int, platform: Platform, session=None) -> CooldownStatus:
        profile = await self.db.get_platform_profile(user_id, platform, session=session)
        if profile is None:
            return CooldownStatus(allowed=True, remaining_seconds=0)
        status = self.evaluate(profile.last_update_attempt, profile.cooldown_seconds)
        if not status.allowed:
            logger.debug(
                f"Cooldown active for user {user_id} on {platform.value}: {status.remaining_seconds}s left"
            )
        return status
