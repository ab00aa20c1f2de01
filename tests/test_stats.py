from datetime import date, datetime

import pytest

from codetrack.data_models.leaderboard import LeaderboardFilters
from codetrack.data_models.profile import Totals
from codetrack.database.models import Platform
from codetrack.services.leaderboard import LeaderboardService
from codetrack.services.stats import StatsService
from codetrack.utils.exceptions import InvalidQueryError


@pytest.fixture
def stats_service(db, clock):
    return StatsService(db, clock=clock, cache_ttl=60)


@pytest.fixture
async def students(make_user):
    return [
        await make_user(department='CSE', section='A', graduating_year=2025, total_score=900, total_problems=90),
        await make_user(department='CSE', section='B', graduating_year=2026, total_score=500, total_problems=40),
        await make_user(department='ECE', section='A', graduating_year=2023, total_score=100, total_problems=5),
        await make_user(department='ECE', admin=True, total_score=9999, total_problems=999),
    ]


async def test_stats_match_leaderboard_filtered_set(db, clock, stats_service, students):
    filters = LeaderboardFilters(department='CSE')
    summary = await stats_service.stats(filters)
    board = await LeaderboardService(db, clock=clock).query(filters)

    assert summary.total_users == board.pagination.total_users == 2
    assert summary.total_score == 1400
    assert summary.total_problems == 130
    assert summary.department_breakdown == {'CSE': 2}
    assert summary.section_breakdown == {'A': 1, 'B': 1}


async def test_stats_breakdowns_and_platform_count(stats_service, students):
    summary = await stats_service.stats(LeaderboardFilters())

    assert summary.total_users == 3
    assert summary.department_breakdown == {'CSE': 2, 'ECE': 1}
    # Clock is 2025-03-10: 2025 is final year, 2023 has graduated
    assert summary.study_year_breakdown == {'Fourth': 1, 'Third': 1, 'Graduated': 1}
    assert summary.active_platform_count == 6
    assert summary.to_dict()['activePlatformCount'] == 6


async def test_stats_include_admins_only_when_asked(stats_service, students):
    summary = await stats_service.stats(LeaderboardFilters(include_admins=True))
    assert summary.total_users == 4


async def test_stats_use_profile_fallback_for_zero_totals(db, stats_service, make_user):
    user = await make_user()
    await db.upsert_platform_profile(user.id, Platform.HACKERRANK, username='h', score=250, problems_solved=12)

    summary = await stats_service.stats(LeaderboardFilters())
    assert summary.total_score == 250
    assert summary.total_problems == 12


async def test_stats_are_cached_for_ttl(db, clock, students):
    cached = StatsService(db, clock=clock, cache_ttl=60)
    uncached = StatsService(db, clock=clock, cache_ttl=0)

    first = await cached.stats(LeaderboardFilters())
    await db.update_user_aggregate(students[0].id, Totals(1, 1))

    assert (await cached.stats(LeaderboardFilters())).total_score == first.total_score
    assert (await uncached.stats(LeaderboardFilters())).total_score == first.total_score - 899

    await cached.invalidate_cache()
    assert (await cached.stats(LeaderboardFilters())).total_score == first.total_score - 899


async def test_admin_stats_weekly_series(db, stats_service, students):
    cse, second, ece, admin = students
    await db.upsert_platform_profile(
        cse.id, Platform.LEETCODE, username='a', score=400, problems_solved=40,
        last_updated=datetime(2025, 3, 9, 10, 0)
    )
    await db.upsert_platform_profile(
        second.id, Platform.LEETCODE, username='b', score=200, problems_solved=15,
        last_updated=datetime(2025, 3, 9, 18, 0)
    )
    await db.upsert_platform_profile(
        ece.id, Platform.CODEFORCES, username='c', score=100, problems_solved=7,
        last_updated=datetime(2025, 1, 1)
    )
    await db.upsert_platform_profile(
        admin.id, Platform.LEETCODE, username='root', score=999, problems_solved=999,
        last_updated=datetime(2025, 3, 9)
    )
    await db.update_user_aggregate(cse.id, Totals(900, 90), synced_at=datetime(2025, 3, 9))

    stats = await stats_service.admin_stats('weekly', today=date(2025, 3, 10))

    assert stats['summary']['totalUsers'] == 3
    assert stats['summary']['activeUsers'] == 1
    assert [u['name'] for u in stats['summary']['topUsers']] == [students[0].name, students[1].name, students[2].name]

    series = {s['platform']: s['data'] for s in stats['timeSeries']}
    assert len(series) == 6
    leetcode = series['leetcode']
    assert len(leetcode) == 7
    assert leetcode[-2] == {'bucket': '2025-03-09', 'problemsSolved': 55}
    assert sum(point['problemsSolved'] for point in leetcode) == 55
    assert all(point['problemsSolved'] == 0 for point in series['codeforces'])

    platforms = {p['platform']: p for p in stats['platformStats']}
    assert platforms['leetcode']['userCount'] == 2
    assert platforms['leetcode']['totalProblems'] == 55
    assert platforms['leetcode']['averageScore'] == 300.0
    assert platforms['github']['userCount'] == 0

    engagement = {p['platform']: p for p in stats['platformEngagement']}
    assert engagement['leetcode']['percentage'] == pytest.approx(66.7)

    departments = {d['department']: d for d in stats['departmentStats']}
    assert departments['CSE']['userCount'] == 2
    assert departments['CSE']['averageScore'] == 700.0


async def test_admin_stats_monthly_window_includes_older_profiles(db, stats_service, students):
    await db.upsert_platform_profile(
        students[2].id, Platform.CODEFORCES, username='c', score=100, problems_solved=7,
        last_updated=datetime(2025, 1, 20)
    )
    stats = await stats_service.admin_stats('monthly', today=date(2025, 3, 10))
    codeforces = {s['platform']: s['data'] for s in stats['timeSeries']}['codeforces']
    assert [point['bucket'] for point in codeforces] == ['2025-01', '2025-02', '2025-03']
    assert codeforces[0]['problemsSolved'] == 7


async def test_admin_stats_rejects_unknown_timeframe(stats_service):
    with pytest.raises(InvalidQueryError):
        await stats_service.admin_stats('hourly')
