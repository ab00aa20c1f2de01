"""
Stats data models for dashboard cards and admin charts.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List


@dataclass(frozen=True)
class StatsSummary:
    total_users: int
    total_score: int
    total_problems: int
    department_breakdown: Dict[str, int]
    section_breakdown: Dict[str, int]
    study_year_breakdown: Dict[str, int]
    active_platform_count: int

    def to_dict(self) -> dict:
        return {
            'totalUsers': self.total_users,
            'totalScore': self.total_score,
            'totalProblems': self.total_problems,
            'departmentBreakdown': self.department_breakdown,
            'sectionBreakdown': self.section_breakdown,
            'studyYearBreakdown': self.study_year_breakdown,
            'activePlatformCount': self.active_platform_count,
        }


@dataclass(frozen=True)
class WindowSpec:
    """A fixed-length window of buckets ending at (and including) ``end``."""
    end: date
    length: int
    unit: str  # 'day' or 'month'


@dataclass(frozen=True)
class SeriesPoint:
    bucket: str  # 'YYYY-MM-DD' for days, 'YYYY-MM' for months
    value: int


@dataclass(frozen=True)
class PlatformSeries:
    platform: str
    points: List[SeriesPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'platform': self.platform,
            'data': [{'bucket': p.bucket, 'problemsSolved': p.value} for p in self.points],
        }
