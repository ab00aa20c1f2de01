"""
Shared ranking utilities for the leaderboard and stats queries.

Both LeaderboardService and StatsService build their WHERE clauses here so the
stats cards always describe exactly the users the leaderboard shows.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, case, or_
from sqlalchemy.sql import Select

from codetrack.constants import FilterConstants
from codetrack.data_models.leaderboard import LeaderboardFilters
from codetrack.data_models.platform_stats import STATS_VARIANTS
from codetrack.database.models import User, PlatformProfile, UserType
from codetrack.utils.academic import expand_study_years


SORT_FIELDS = ('totalScore', 'problemsSolved', 'name', 'department', 'section', 'rollNumber', 'graduatingYear')
NUMERIC_SORT_FIELDS = ('totalScore', 'problemsSolved')
LEADERBOARD_TYPES = {
    'score': 'totalScore',
    'problems': 'problemsSolved',
}


class RankingUtility:
    """Shared ranking logic for consistent CTE pattern usage."""

    @staticmethod
    def problem_counting_platforms() -> List[str]:
        return [p.value for p, variant in STATS_VARIANTS.items() if variant.counts_problems]

    @staticmethod
    def effective_total_score():
        """Cached total score, recomputed from profiles when the cache holds 0."""
        live_sum = (
            select(func.coalesce(func.sum(PlatformProfile.score), 0))
            .where(PlatformProfile.user_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        return case((User.total_score > 0, User.total_score), else_=live_sum)

    @staticmethod
    def effective_total_problems():
        """Cached problems total, recomputed from counting platforms when the cache holds 0."""
        live_sum = (
            select(func.coalesce(func.sum(PlatformProfile.problems_solved), 0))
            .where(
                PlatformProfile.user_id == User.id,
                PlatformProfile.platform.in_(RankingUtility.problem_counting_platforms())
            )
            .correlate(User)
            .scalar_subquery()
        )
        return case((User.total_problems_solved > 0, User.total_problems_solved), else_=live_sum)

    @staticmethod
    def get_sort_column_mapping() -> Dict[str, Any]:
        """Get consistent sort column mapping used across services."""
        return {
            'totalScore': RankingUtility.effective_total_score(),
            'problemsSolved': RankingUtility.effective_total_problems(),
            'name': User.name,
            'department': User.department,
            'section': User.section,
            'rollNumber': User.roll_number,
            'graduatingYear': User.graduating_year,
        }

    @staticmethod
    def default_order(sort_by: str) -> str:
        """Numeric ranking fields sort descending, identity fields ascending."""
        return 'desc' if sort_by in NUMERIC_SORT_FIELDS else 'asc'

    @staticmethod
    def build_filter_clauses(filters: LeaderboardFilters, today: date) -> List[Any]:
        """
        Translate filters into AND-combined WHERE clauses.

        Study years are expanded into graduating years and OR-ed with any
        explicit years inside a single IN clause.
        """
        clauses = []

        if filters.department and filters.department != FilterConstants.ALL_DEPARTMENTS:
            clauses.append(User.department == filters.department)

        if filters.section and filters.section != FilterConstants.ALL_SECTIONS:
            clauses.append(User.section == filters.section)

        if filters.gender and filters.gender != FilterConstants.ALL_GENDERS:
            clauses.append(User.gender == filters.gender)

        if filters.graduating_years or filters.study_years:
            years = set(filters.graduating_years)
            years.update(expand_study_years(filters.study_years, today))
            clauses.append(User.graduating_year.in_(sorted(years)))

        term = (filters.search or "").strip()
        if term:
            clauses.append(or_(
                User.name.icontains(term, autoescape=True),
                User.email.icontains(term, autoescape=True),
                User.roll_number.icontains(term, autoescape=True),
            ))

        if not filters.include_admins:
            clauses.append(User.user_type != UserType.ADMIN.value)

        return clauses

    @staticmethod
    def create_user_ranking_cte(
        filters: LeaderboardFilters,
        today: date,
        sort_by: str = "totalScore",
        order: Optional[str] = None
    ) -> Select:
        """
        Create a CTE that ranks every filtered user.

        Rank is row_number() over the full filtered set ordered by the sort
        column with user id as a stable tie-break, so ranks are unique and
        independent of the page being read.
        """
        sort_columns = RankingUtility.get_sort_column_mapping()
        sort_column = sort_columns[sort_by]
        order = order or RankingUtility.default_order(sort_by)
        ordered = sort_column.desc() if order == 'desc' else sort_column.asc()

        query = select(
            User.id.label('user_id'),
            User.name,
            User.email,
            User.roll_number,
            User.department,
            User.section,
            User.graduating_year,
            sort_columns['totalScore'].label('total_score'),
            sort_columns['problemsSolved'].label('problems_solved'),
            func.row_number().over(order_by=[ordered, User.id.asc()]).label('rank'),
        ).where(*RankingUtility.build_filter_clauses(filters, today))

        return query.cte('ranked_users')

    @staticmethod
    def validate_sort_by(sort_by: str) -> bool:
        """Validate sort_by parameter against allowed values."""
        return sort_by in SORT_FIELDS

    @staticmethod
    def validate_order(order: str) -> bool:
        return order in ('asc', 'desc')

    @staticmethod
    def validate_leaderboard_type(leaderboard_type: str) -> bool:
        """Validate leaderboard_type parameter against allowed values."""
        return leaderboard_type in LEADERBOARD_TYPES
