"""
Score aggregation across platforms.

Pure functions, no I/O. The leaderboard applies the same zero-fallback rule
in SQL (see RankingUtility) so displayed and sorted totals agree.
"""

from typing import Iterable, Mapping

from codetrack.data_models.platform_stats import PlatformStats, stats_from_profile
from codetrack.data_models.profile import AggregateSnapshot, Totals


def _valid(value) -> int:
    """Negative, missing or non-numeric values count as 0."""
    if isinstance(value, bool):
        return 0
    try:
        value = int(value)
    except (TypeError, ValueError):
        return 0
    return value if value > 0 else 0


def recompute(platform_scores: Mapping[str, PlatformStats]) -> Totals:
    """Sum scores over all platforms and problems over problem-counting platforms."""
    total_score = 0
    total_problems = 0
    for stats in platform_scores.values():
        if stats is None:
            continue
        total_score += _valid(stats.score)
        total_problems += _valid(stats.countable_problems)
    return Totals(total_score=total_score, total_problems_solved=total_problems)


def aggregate(snapshot: AggregateSnapshot) -> Totals:
    """Cached totals, with any zero cached value recomputed from the live map."""
    cached_score = _valid(snapshot.cached_total_score)
    cached_problems = _valid(snapshot.cached_total_problems_solved)
    if cached_score and cached_problems:
        return Totals(cached_score, cached_problems)

    live = recompute(snapshot.platform_scores)
    return Totals(
        total_score=cached_score or live.total_score,
        total_problems_solved=cached_problems or live.total_problems_solved,
    )


def snapshot_for(user, profiles: Iterable) -> AggregateSnapshot:
    """Build a snapshot from a User row and its PlatformProfile rows."""
    return AggregateSnapshot(
        cached_total_score=user.total_score or 0,
        cached_total_problems_solved=user.total_problems_solved or 0,
        platform_scores={profile.platform: stats_from_profile(profile) for profile in profiles},
    )
