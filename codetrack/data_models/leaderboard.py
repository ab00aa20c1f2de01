"""
Leaderboard data models.

Provides immutable data transfer objects for leaderboard queries and results.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class LeaderboardFilters:
    """AND-combined filters shared by the leaderboard and stats queries."""
    department: Optional[str] = None
    section: Optional[str] = None
    graduating_years: Tuple[int, ...] = ()
    study_years: Tuple[str, ...] = ()
    gender: Optional[str] = None
    search: str = ""
    include_admins: bool = False

    def cache_key(self) -> str:
        return (
            f"{self.department}:{self.section}:{','.join(map(str, sorted(self.graduating_years)))}:"
            f"{','.join(sorted(self.study_years))}:{self.gender}:{self.search.strip().lower()}:"
            f"{self.include_admins}"
        )


@dataclass(frozen=True)
class PlatformScore:
    """Per-platform summary shown in a leaderboard row."""
    score: int
    problems_solved: int
    rating: int
    contests_participated: int


@dataclass(frozen=True)
class LeaderboardEntry:
    """Single leaderboard row."""
    rank: Optional[int]
    user_id: int
    name: str
    email: str
    roll_number: str
    department: str
    section: Optional[str]
    graduating_year: Optional[int]
    total_score: int
    problems_solved: int
    platform_scores: Dict[str, PlatformScore] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'id': self.user_id,
            'rank': self.rank,
            'name': self.name,
            'email': self.email,
            'rollNumber': self.roll_number,
            'department': self.department,
            'section': self.section,
            'graduatingYear': self.graduating_year,
            'totalScore': self.total_score,
            'problemsSolved': self.problems_solved,
            'platformScores': {
                platform: {
                    'score': ps.score,
                    'problemsSolved': ps.problems_solved,
                    'rating': ps.rating,
                    'contestsParticipated': ps.contests_participated,
                }
                for platform, ps in self.platform_scores.items()
            },
        }


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_users: int
    users_per_page: int

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    def to_dict(self) -> dict:
        return {
            'currentPage': self.current_page,
            'totalPages': self.total_pages,
            'totalUsers': self.total_users,
            'usersPerPage': self.users_per_page,
            'hasNextPage': self.has_next_page,
            'hasPrevPage': self.has_prev_page,
        }


@dataclass(frozen=True)
class LeaderboardResult:
    """Paginated leaderboard data plus the requester's pinned row."""
    entries: List[LeaderboardEntry]
    pagination: Pagination
    sort_by: str
    order: str
    requester_entry: Optional[LeaderboardEntry] = None
    requester_rank: Optional[int] = None
