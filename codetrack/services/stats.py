"""
Dashboard statistics.

Public stats cards are computed over exactly the leaderboard's filtered set
and cached briefly. Admin stats add per-platform totals and time series; a user counts as
active when they synced a profile in the last week.
"""

import asyncio
import time
import logging
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Optional

from sqlalchemy import select, func

from codetrack.config import Config
from codetrack.constants import CacheConstants
from codetrack.data_models.leaderboard import LeaderboardFilters
from codetrack.data_models.stats import PlatformSeries, StatsSummary
from codetrack.database.models import User, PlatformProfile, UserType
from codetrack.platforms.registry import PLATFORM_REGISTRY, SUPPORTED_PLATFORM_COUNT
from codetrack.services.base import BaseService
from codetrack.services.leaderboard import LeaderboardService
from codetrack.utils.academic import study_year_label
from codetrack.utils.clock import utcnow
from codetrack.utils.exceptions import InvalidQueryError
from codetrack.utils.ranking import RankingUtility
from codetrack.utils.time_series import bucketize, expand_to_fixed_window, window_for, window_start

logger = logging.getLogger(__name__)

ACTIVE_WINDOW_DAYS = 7
TOP_USERS_LIMIT = 5


class StatsService(BaseService):
    """Aggregates for stats cards and the admin dashboard, with TTL caching."""

    def __init__(self, db, clock: Callable[[], datetime] = utcnow, cache_ttl: Optional[int] = None):
        super().__init__(db.session_factory)
        self.db = db
        self.clock = clock
        self.leaderboard = LeaderboardService(db, clock=clock)
        # TTL cache for stats summaries
        self._cache = {}
        self._cache_timestamps = {}
        self._cache_ttl = Config.STATS_CACHE_TTL if cache_ttl is None else cache_ttl
        self._cache_max_size = CacheConstants.DEFAULT_MAX_CACHE_SIZE
        self._cache_lock = asyncio.Lock()

    async def _get_cached(self, key: str):
        async with self._cache_lock:
            timestamp = self._cache_timestamps.get(key)
            if timestamp is None or time.time() - timestamp >= self._cache_ttl:
                return None
            return self._cache[key]

    async def _store(self, key: str, value) -> None:
        async with self._cache_lock:
            current_time = time.time()
            expired_keys = [
                k for k, timestamp in self._cache_timestamps.items()
                if current_time - timestamp >= self._cache_ttl
            ]
            for k in expired_keys:
                self._cache.pop(k, None)
                self._cache_timestamps.pop(k, None)

            # Enforce size limit by removing oldest entries
            if len(self._cache) >= self._cache_max_size:
                oldest = sorted(self._cache_timestamps.items(), key=lambda x: x[1])
                for k, _ in oldest[:len(self._cache) - self._cache_max_size + 1]:
                    self._cache.pop(k, None)
                    self._cache_timestamps.pop(k, None)

            self._cache[key] = value
            self._cache_timestamps[key] = current_time

    async def invalidate_cache(self) -> None:
        async with self._cache_lock:
            self._cache.clear()
            self._cache_timestamps.clear()

    async def stats(self, filters: LeaderboardFilters) -> StatsSummary:
        """Totals and breakdowns over the leaderboard's filtered set."""
        today = self.clock().date()
        cache_key = f"stats:{filters.cache_key()}:{today.isoformat()}"
        cached = await self._get_cached(cache_key)
        if cached is not None:
            return cached

        clauses = RankingUtility.build_filter_clauses(filters, today)
        score = RankingUtility.effective_total_score()
        problems = RankingUtility.effective_total_problems()

        async with self.get_session() as session:
            totals = (await session.execute(
                select(
                    func.count(User.id),
                    func.coalesce(func.sum(score), 0),
                    func.coalesce(func.sum(problems), 0),
                ).where(*clauses)
            )).one()

            department_rows = await session.execute(
                select(User.department, func.count(User.id)).where(*clauses).group_by(User.department)
            )
            section_rows = await session.execute(
                select(User.section, func.count(User.id)).where(*clauses).group_by(User.section)
            )
            year_rows = await session.execute(
                select(User.graduating_year, func.count(User.id)).where(*clauses).group_by(User.graduating_year)
            )

            study_years: Dict[str, int] = {}
            for graduating_year, count in year_rows:
                label = study_year_label(graduating_year, today)
                if label is not None:
                    study_years[label] = study_years.get(label, 0) + count

            summary = StatsSummary(
                total_users=totals[0] or 0,
                total_score=int(totals[1] or 0),
                total_problems=int(totals[2] or 0),
                department_breakdown={dept: count for dept, count in department_rows if dept},
                section_breakdown={section: count for section, count in section_rows if section},
                study_year_breakdown=study_years,
                active_platform_count=SUPPORTED_PLATFORM_COUNT,
            )

        await self._store(cache_key, summary)
        return summary

    async def admin_stats(self, timeframe: str = 'weekly', today: Optional[date] = None) -> dict:
        """Dashboard aggregates for administrators."""
        today = today or self.clock().date()
        try:
            window = window_for(timeframe, today)
        except ValueError as e:
            raise InvalidQueryError(str(e)) from e

        non_admin = User.user_type != UserType.ADMIN.value
        active_cutoff = datetime(today.year, today.month, today.day) - timedelta(days=ACTIVE_WINDOW_DAYS)
        score = RankingUtility.effective_total_score()

        async with self.get_session() as session:
            total_users = await session.scalar(select(func.count(User.id)).where(non_admin)) or 0
            active_users = await session.scalar(
                select(func.count(User.id)).where(
                    non_admin,
                    User.last_profile_sync >= active_cutoff
                )
            ) or 0

            linked = (
                select(
                    PlatformProfile.platform,
                    func.count(PlatformProfile.id),
                    func.coalesce(func.sum(PlatformProfile.problems_solved), 0),
                    func.coalesce(func.avg(PlatformProfile.score), 0),
                )
                .join(User, User.id == PlatformProfile.user_id)
                .where(non_admin, PlatformProfile.username != '')
                .group_by(PlatformProfile.platform)
            )
            per_platform = {
                row[0]: {'userCount': row[1], 'totalProblems': int(row[2]), 'averageScore': round(float(row[3]), 1)}
                for row in await session.execute(linked)
            }

            department_rows = await session.execute(
                select(User.department, func.count(User.id), func.avg(score))
                .where(non_admin)
                .group_by(User.department)
                .order_by(User.department)
            )
            department_stats = [
                {'department': dept, 'userCount': count, 'averageScore': round(float(avg or 0), 1)}
                for dept, count, avg in department_rows
            ]

            series_rows = await session.execute(
                select(PlatformProfile.platform, PlatformProfile.last_updated, PlatformProfile.problems_solved)
                .join(User, User.id == PlatformProfile.user_id)
                .where(
                    non_admin,
                    PlatformProfile.username != '',
                    PlatformProfile.last_updated >= window_start(window),
                )
            )
            events = {}
            for platform, last_updated, solved in series_rows:
                events.setdefault(platform, []).append((last_updated, solved or 0))

        platform_stats = []
        platform_engagement = []
        time_series = []
        for platform, info in PLATFORM_REGISTRY.items():
            stats = per_platform.get(platform.value, {'userCount': 0, 'totalProblems': 0, 'averageScore': 0})
            platform_stats.append({'platform': platform.value, 'displayName': info.display_name, **stats})
            platform_engagement.append({
                'platform': platform.value,
                'linkedUsers': stats['userCount'],
                'percentage': round(100.0 * stats['userCount'] / total_users, 1) if total_users else 0.0,
            })
            raw = bucketize(events.get(platform.value, []), window.unit)
            time_series.append(PlatformSeries(platform.value, expand_to_fixed_window(raw, window)).to_dict())

        top_users = [entry.to_dict() for entry in await self.leaderboard.top(LeaderboardFilters(), 'score', TOP_USERS_LIMIT)]

        logger.info(f"Computed admin stats for {timeframe} window ending {today.isoformat()}")
        return {
            'timeframe': timeframe,
            'summary': {
                'totalUsers': total_users,
                'activeUsers': active_users,
                'topUsers': top_users,
            },
            'platformStats': platform_stats,
            'departmentStats': department_stats,
            'platformEngagement': platform_engagement,
            'timeSeries': time_series,
        }
