"""
Profile sync data models.

Provides immutable data transfer objects for sync results and score totals.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from codetrack.data_models.platform_stats import PlatformStats


@dataclass(frozen=True)
class Totals:
    """A user's aggregate across platforms."""
    total_score: int = 0
    total_problems_solved: int = 0


@dataclass(frozen=True)
class AggregateSnapshot:
    """Cached totals plus the live per-platform map they were derived from."""
    cached_total_score: int = 0
    cached_total_problems_solved: int = 0
    platform_scores: Dict[str, PlatformStats] = field(default_factory=dict)


@dataclass(frozen=True)
class CooldownStatus:
    """Result of a cooldown check for one user+platform pair."""
    allowed: bool
    remaining_seconds: int = 0


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a successful sync."""
    user_id: int
    platform: str
    username: str
    stats: PlatformStats
    totals: Totals
    synced_at: datetime

    def to_dict(self) -> dict:
        return {
            'platform': self.platform,
            'username': self.username,
            'details': self.stats.to_dict(),
            'totalScore': self.totals.total_score,
            'totalProblemsSolved': self.totals.total_problems_solved,
            'lastUpdated': self.synced_at.isoformat(),
        }


@dataclass(frozen=True)
class SyncOutcome:
    """Per-platform outcome of a multi-platform sync; exactly one of result/error is set."""
    platform: str
    username: str
    result: Optional[SyncResult] = None
    error: Optional[str] = None
    remaining_seconds: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None
