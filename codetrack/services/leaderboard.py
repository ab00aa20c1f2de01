"""
Leaderboard query engine.

Ranks are computed by row_number() over the whole filtered, sorted set (see
RankingUtility), so a user's rank never depends on the page being read.
"""

import dataclasses
import logging
import math
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import select

from codetrack.config import Config
from codetrack.constants import PaginationConstants
from codetrack.data_models.leaderboard import (
    LeaderboardEntry, LeaderboardFilters, LeaderboardResult, Pagination, PlatformScore
)
from codetrack.services import score_aggregator
from codetrack.services.base import BaseService
from codetrack.utils.clock import utcnow
from codetrack.utils.exceptions import InvalidQueryError
from codetrack.utils.ranking import RankingUtility, LEADERBOARD_TYPES

logger = logging.getLogger(__name__)


def clamp_page_size(page_size) -> int:
    try:
        page_size = int(page_size)
    except (TypeError, ValueError):
        return PaginationConstants.DEFAULT_PAGE_SIZE
    return max(1, min(page_size, Config.MAX_PAGE_SIZE))


def clamp_page(page) -> int:
    try:
        page = int(page)
    except (TypeError, ValueError):
        return 1
    return max(1, page)


class LeaderboardService(BaseService):
    """Service for paginated, filtered leaderboard queries."""

    def __init__(self, db, clock: Callable[[], datetime] = utcnow):
        super().__init__(db.session_factory)
        self.db = db
        self.clock = clock

    async def _platform_scores(self, user_ids: List[int]) -> Dict[int, Dict[str, PlatformScore]]:
        """Per-platform summaries for many users, loaded in one query."""
        by_user = defaultdict(dict)
        for profile in await self.db.get_profiles_for_users(user_ids):
            if not profile.is_linked:
                continue
            by_user[profile.user_id][profile.platform] = PlatformScore(
                score=profile.score or 0,
                problems_solved=profile.problems_solved or 0,
                rating=profile.rating or 0,
                contests_participated=profile.contests_participated or 0,
            )
        return by_user

    @staticmethod
    def _entry(row, platform_scores: Dict[str, PlatformScore], rank: Optional[int]) -> LeaderboardEntry:
        return LeaderboardEntry(
            rank=rank,
            user_id=row.user_id,
            name=row.name,
            email=row.email,
            roll_number=row.roll_number,
            department=row.department,
            section=row.section,
            graduating_year=row.graduating_year,
            total_score=row.total_score or 0,
            problems_solved=row.problems_solved or 0,
            platform_scores=platform_scores,
        )

    def _resolve_sort(self, sort_by: Optional[str], order: Optional[str], leaderboard_type: Optional[str]):
        if not sort_by:
            if leaderboard_type and not RankingUtility.validate_leaderboard_type(leaderboard_type):
                raise InvalidQueryError(f"Invalid leaderboard type: {leaderboard_type}")
            sort_by = LEADERBOARD_TYPES.get(leaderboard_type or 'score')
        if not RankingUtility.validate_sort_by(sort_by):
            raise InvalidQueryError(f"Invalid sort field: {sort_by}")
        order = (order or RankingUtility.default_order(sort_by)).lower()
        if not RankingUtility.validate_order(order):
            raise InvalidQueryError(f"Invalid sort order: {order}")
        return sort_by, order

    async def query(
        self,
        filters: LeaderboardFilters,
        sort_by: Optional[str] = None,
        order: Optional[str] = None,
        page: int = 1,
        page_size: int = PaginationConstants.DEFAULT_PAGE_SIZE,
        requester_id: Optional[int] = None,
        leaderboard_type: Optional[str] = None
    ) -> LeaderboardResult:
        """Get one page of the filtered leaderboard plus the requester's own row."""
        sort_by, order = self._resolve_sort(sort_by, order, leaderboard_type)
        page = clamp_page(page)
        page_size = clamp_page_size(page_size)
        today = self.clock().date()

        requester = await self.db.get_user(requester_id) if requester_id is not None else None
        if requester is not None:
            # A known requester decides admin visibility; otherwise the caller's filters stand
            filters = dataclasses.replace(filters, include_admins=requester.is_admin)

        rows, total = await self.db.query_users(filters, sort_by, order, page, page_size, today)
        scores = await self._platform_scores([row.user_id for row in rows])
        entries = [self._entry(row, scores.get(row.user_id, {}), row.rank) for row in rows]

        requester_entry = None
        requester_rank = None
        if requester is not None:
            requester_rank = await self._rank_of(requester.id, filters, sort_by, order, today)
            requester_entry = await self._requester_entry(requester, requester_rank)

        pagination = Pagination(
            current_page=page,
            total_pages=math.ceil(total / page_size) if total > 0 else 1,
            total_users=total,
            users_per_page=page_size,
        )
        logger.debug(f"Leaderboard page {page}/{pagination.total_pages} sorted by {sort_by} {order}")
        return LeaderboardResult(
            entries=entries,
            pagination=pagination,
            sort_by=sort_by,
            order=order,
            requester_entry=requester_entry,
            requester_rank=requester_rank,
        )

    async def _rank_of(self, user_id: int, filters: LeaderboardFilters, sort_by: str, order: str, today) -> Optional[int]:
        """Rank of a user inside the filtered set, None when filters exclude them."""
        ranking_cte = RankingUtility.create_user_ranking_cte(filters, today, sort_by, order)
        async with self.get_session() as session:
            return await session.scalar(
                select(ranking_cte.c.rank).where(ranking_cte.c.user_id == user_id)
            )

    async def _requester_entry(self, user, rank: Optional[int]) -> LeaderboardEntry:
        """The requester's unfiltered row; totals use the same fallback as the ranking."""
        profiles = await self.db.get_platform_profiles(user.id)
        totals = score_aggregator.aggregate(score_aggregator.snapshot_for(user, profiles))
        scores = (await self._platform_scores([user.id])).get(user.id, {})
        return LeaderboardEntry(
            rank=rank,
            user_id=user.id,
            name=user.name,
            email=user.email,
            roll_number=user.roll_number,
            department=user.department,
            section=user.section,
            graduating_year=user.graduating_year,
            total_score=totals.total_score,
            problems_solved=totals.total_problems_solved,
            platform_scores=scores,
        )

    async def top(
        self,
        filters: LeaderboardFilters,
        leaderboard_type: str = 'score',
        limit: int = PaginationConstants.TOP_PERFORMERS_LIMIT
    ) -> List[LeaderboardEntry]:
        """Podium for the active ranking metric."""
        if not RankingUtility.validate_leaderboard_type(leaderboard_type):
            raise InvalidQueryError(f"Invalid leaderboard type: {leaderboard_type}")
        result = await self.query(
            filters,
            sort_by=LEADERBOARD_TYPES[leaderboard_type],
            page=1,
            page_size=limit,
        )
        return result.entries

    async def export(self) -> List[LeaderboardEntry]:
        """Every non-admin user ranked by score, with per-platform summaries."""
        ranking_cte = RankingUtility.create_user_ranking_cte(
            LeaderboardFilters(), self.clock().date(), 'totalScore', 'desc'
        )
        async with self.get_session() as session:
            rows = list(await session.execute(select(ranking_cte).order_by(ranking_cte.c.rank)))
        scores = await self._platform_scores([row.user_id for row in rows])
        logger.info(f"Exporting leaderboard with {len(rows)} users")
        return [self._entry(row, scores.get(row.user_id, {}), row.rank) for row in rows]
