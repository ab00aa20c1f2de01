"""
Normalized per-platform statistics.

One frozen dataclass per platform sharing a common subset (score,
problems_solved, rating, contests_participated, last_updated). Fields beyond
the common subset are persisted in the profile's JSON ``details`` column.
"""

from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Type

from codetrack.database.models import Platform


@dataclass(frozen=True)
class PlatformStats:
    """Common subset shared by every platform."""
    platform: ClassVar[Platform]
    # False when problems_solved is not a count of solved problems
    counts_problems: ClassVar[bool] = True

    score: int = 0
    problems_solved: int = 0
    rating: int = 0
    contests_participated: int = 0
    last_updated: Optional[datetime] = None

    COMMON_FIELDS: ClassVar[tuple] = (
        'score', 'problems_solved', 'rating', 'contests_participated', 'last_updated'
    )

    @property
    def countable_problems(self) -> int:
        return self.problems_solved if self.counts_problems else 0

    def details(self) -> Dict[str, Any]:
        """Platform-specific fields only, JSON-ready."""
        return {
            name: value for name, value in asdict(self).items()
            if name not in self.COMMON_FIELDS
        }

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['last_updated'] = self.last_updated.isoformat() if self.last_updated else None
        data['platform'] = self.platform.value
        return data

    @classmethod
    def from_profile(cls, profile) -> "PlatformStats":
        """Rebuild the variant from a stored PlatformProfile row."""
        known = {f.name for f in fields(cls)}
        extra = {k: v for k, v in (profile.details or {}).items() if k in known}
        return cls(
            score=profile.score or 0,
            problems_solved=profile.problems_solved or 0,
            rating=profile.rating or 0,
            contests_participated=profile.contests_participated or 0,
            last_updated=profile.last_updated,
            **extra
        )


@dataclass(frozen=True)
class LeetCodeStats(PlatformStats):
    platform: ClassVar[Platform] = Platform.LEETCODE

    ranking: int = 0
    reputation: int = 0
    easy_problems_solved: int = 0
    medium_problems_solved: int = 0
    hard_problems_solved: int = 0


@dataclass(frozen=True)
class CodeforcesStats(PlatformStats):
    platform: ClassVar[Platform] = Platform.CODEFORCES

    max_rating: int = 0
    rank: str = 'unrated'
    contribution: int = 0
    total_accepted_submissions: int = 0
    easy_problems_solved: int = 0
    medium_problems_solved: int = 0
    hard_problems_solved: int = 0


@dataclass(frozen=True)
class CodeChefStats(PlatformStats):
    platform: ClassVar[Platform] = Platform.CODECHEF

    global_rank: int = 0
    country_rank: int = 0
    stars: int = 0


@dataclass(frozen=True)
class GeeksforGeeksStats(PlatformStats):
    platform: ClassVar[Platform] = Platform.GEEKSFORGEEKS

    coding_score: int = 0
    institute_rank: int = 0
    current_streak: int = 0
    max_streak: int = 0
    monthly_score: int = 0
    rank_title: str = 'Code Enthusiast'
    school_problems_solved: int = 0
    basic_problems_solved: int = 0
    easy_problems_solved: int = 0
    medium_problems_solved: int = 0
    hard_problems_solved: int = 0


@dataclass(frozen=True)
class HackerRankStats(PlatformStats):
    platform: ClassVar[Platform] = Platform.HACKERRANK

    total_stars: int = 0
    badges: int = 0
    language_badges: Dict[str, Any] = field(default_factory=dict)
    skill_badges: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GitHubStats(PlatformStats):
    platform: ClassVar[Platform] = Platform.GITHUB
    # Contributions are not solved problems
    counts_problems: ClassVar[bool] = False

    public_repos: int = 0
    total_commits: int = 0
    followers: int = 0
    following: int = 0
    stars_received: int = 0


STATS_VARIANTS: Dict[Platform, Type[PlatformStats]] = {
    variant.platform: variant
    for variant in (
        LeetCodeStats, CodeforcesStats, CodeChefStats,
        GeeksforGeeksStats, HackerRankStats, GitHubStats,
    )
}


def stats_from_profile(profile) -> PlatformStats:
    """Build the right variant for a stored profile row."""
    return STATS_VARIANTS[Platform.from_key(profile.platform)].from_profile(profile)
