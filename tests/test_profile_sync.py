import asyncio

import httpx
import pytest
from sqlalchemy.exc import SQLAlchemyError

from codetrack.data_models.platform_stats import GitHubStats, LeetCodeStats
from codetrack.data_models.profile import Totals
from codetrack.database.models import Platform
from codetrack.platforms.base import (
    PlatformNotFound, PlatformRateLimited, PlatformUnavailable, create_http_client
)
from codetrack.platforms.hackerrank import HackerRankAdapter
from codetrack.platforms.throttle import PlatformThrottle
from codetrack.services.profile_sync import ProfileSyncCoordinator
from codetrack.services.sync_locks import InMemoryInFlightLocks
from codetrack.utils.exceptions import (
    ValidationError, UserNotFoundError, NotFoundError, RateLimitedError,
    ConcurrencyConflict, TransientError, DatabaseError
)


async def test_successful_sync_stores_stats_and_totals(db, coordinator, adapters, make_user, clock):
    user = await make_user()
    adapters[Platform.LEETCODE].queue(LeetCodeStats(score=500, problems_solved=40, easy_problems_solved=30))

    result = await coordinator.sync(user.id, 'leetcode', '  alice  ')

    assert result.username == 'alice'
    assert result.totals.total_score == 500
    assert result.totals.total_problems_solved == 40
    assert adapters[Platform.LEETCODE].calls == ['alice']

    profile = await db.get_platform_profile(user.id, Platform.LEETCODE)
    assert profile.username == 'alice'
    assert profile.score == 500
    assert profile.details['easy_problems_solved'] == 30
    assert profile.last_updated == clock.now
    assert profile.last_update_attempt == clock.now
    assert profile.last_update_status == 'success'
    assert profile.update_attempts == 1

    stored = await db.get_user(user.id)
    assert stored.total_score == 500
    assert stored.total_problems_solved == 40
    assert stored.last_profile_sync == clock.now


async def test_second_sync_within_cooldown_is_rate_limited(coordinator, adapters, make_user, clock):
    user = await make_user()
    await coordinator.sync(user.id, 'leetcode', 'alice')
    clock.advance(5)

    with pytest.raises(RateLimitedError) as excinfo:
        await coordinator.sync(user.id, 'leetcode', 'alice')

    assert excinfo.value.remaining_seconds == 55
    assert len(adapters[Platform.LEETCODE].calls) == 1


async def test_sync_allowed_again_after_cooldown(coordinator, adapters, make_user, clock):
    user = await make_user()
    await coordinator.sync(user.id, 'leetcode', 'alice')
    clock.advance(60)

    await coordinator.sync(user.id, 'leetcode', 'alice')
    assert len(adapters[Platform.LEETCODE].calls) == 2


async def test_cooldown_is_per_platform(coordinator, adapters, make_user):
    user = await make_user()
    await coordinator.sync(user.id, 'leetcode', 'alice')
    await coordinator.sync(user.id, 'codeforces', 'alice')
    assert len(adapters[Platform.CODEFORCES].calls) == 1


@pytest.mark.parametrize("platform, username", [
    ('leetcode', ''),
    ('leetcode', '   '),
    ('leetcode', None),
    ('myspace', 'alice'),
    ('leetcode', 'bad name!'),
    ('github', '-leading-dash'),
])
async def test_invalid_requests_never_fetch_or_charge_cooldown(db, coordinator, adapters, make_user, platform, username):
    user = await make_user()

    with pytest.raises(ValidationError):
        await coordinator.sync(user.id, platform, username)

    assert all(not adapter.calls for adapter in adapters.values())
    assert await db.get_platform_profiles(user.id) == []


async def test_unknown_user(coordinator, adapters):
    with pytest.raises(UserNotFoundError):
        await coordinator.sync(999, 'leetcode', 'alice')
    assert not adapters[Platform.LEETCODE].calls


async def test_not_found_writes_nothing_and_carries_hint(db, coordinator, adapters, make_user):
    user = await make_user()
    adapters[Platform.CODECHEF].queue(PlatformNotFound(Platform.CODECHEF, 'ghost'))

    with pytest.raises(NotFoundError) as excinfo:
        await coordinator.sync(user.id, 'codechef', 'ghost')

    assert excinfo.value.hint
    assert excinfo.value.hint in excinfo.value.user_message
    assert await db.get_platform_profile(user.id, Platform.CODECHEF) is None

    # No cooldown was charged
    await coordinator.sync(user.id, 'codechef', 'realuser')


async def test_not_found_preserves_previous_stats(db, coordinator, adapters, make_user, clock):
    user = await make_user()
    await coordinator.sync(user.id, 'leetcode', 'alice')
    clock.advance(61)
    adapters[Platform.LEETCODE].queue(PlatformNotFound(Platform.LEETCODE, 'typo'))

    with pytest.raises(NotFoundError):
        await coordinator.sync(user.id, 'leetcode', 'typo')

    profile = await db.get_platform_profile(user.id, Platform.LEETCODE)
    assert profile.username == 'alice'
    assert profile.score == 100


async def test_platform_rate_limit_charges_retry_after(db, coordinator, adapters, make_user, clock):
    user = await make_user()
    await coordinator.sync(user.id, 'codeforces', 'tourist')
    synced_at = clock.now
    clock.advance(61)
    adapters[Platform.CODEFORCES].queue(PlatformRateLimited(Platform.CODEFORCES, 'tourist', retry_after=120))

    with pytest.raises(RateLimitedError) as excinfo:
        await coordinator.sync(user.id, 'codeforces', 'tourist')
    assert excinfo.value.remaining_seconds == 120

    profile = await db.get_platform_profile(user.id, Platform.CODEFORCES)
    assert profile.last_update_status == 'rate_limited'
    assert profile.cooldown_seconds == 120
    assert profile.last_update_attempt == clock.now
    assert profile.last_updated == synced_at
    assert profile.last_update_attempt >= profile.last_updated
    assert profile.score == 100
    assert profile.update_attempts == 1

    clock.advance(30)
    with pytest.raises(RateLimitedError) as excinfo:
        await coordinator.sync(user.id, 'codeforces', 'tourist')
    assert excinfo.value.remaining_seconds == 90
    assert len(adapters[Platform.CODEFORCES].calls) == 2


async def test_transient_failure_writes_nothing(db, coordinator, adapters, make_user):
    user = await make_user()
    adapters[Platform.GEEKSFORGEEKS].queue(
        PlatformUnavailable(Platform.GEEKSFORGEEKS, 'bob', 'connection reset')
    )

    with pytest.raises(TransientError):
        await coordinator.sync(user.id, 'geeksforgeeks', 'bob')

    assert await db.get_platform_profile(user.id, Platform.GEEKSFORGEEKS) is None
    # Retry is allowed straight away
    await coordinator.sync(user.id, 'geeksforgeeks', 'bob')


async def test_fetch_timeout_is_transient(db, coordinator, adapters, make_user):
    user = await make_user()
    coordinator.fetch_timeout = 0.05
    adapters[Platform.HACKERRANK].delay = 1.0

    with pytest.raises(TransientError):
        await coordinator.sync(user.id, 'hackerrank', 'bob')
    assert await db.get_platform_profile(user.id, Platform.HACKERRANK) is None


async def test_concurrent_sync_for_same_pair_fetches_once(coordinator, adapters, make_user):
    user = await make_user()
    adapter = adapters[Platform.LEETCODE]
    adapter.gate = asyncio.Event()

    first = asyncio.create_task(coordinator.sync(user.id, 'leetcode', 'alice'))
    await asyncio.wait_for(adapter.started.wait(), timeout=5)

    with pytest.raises(ConcurrencyConflict) as excinfo:
        await coordinator.sync(user.id, 'leetcode', 'alice')
    assert isinstance(excinfo.value, RateLimitedError)

    adapter.gate.set()
    result = await first
    assert result.username == 'alice'
    assert len(adapter.calls) == 1


async def test_lock_released_after_failure(coordinator, adapters, make_user):
    user = await make_user()
    adapters[Platform.LEETCODE].queue(PlatformUnavailable(Platform.LEETCODE, 'alice', 'boom'))
    with pytest.raises(TransientError):
        await coordinator.sync(user.id, 'leetcode', 'alice')

    await coordinator.sync(user.id, 'leetcode', 'alice')


async def test_resync_replaces_instead_of_accumulating(db, coordinator, adapters, make_user, clock):
    user = await make_user()
    stats = LeetCodeStats(score=300, problems_solved=20)
    adapters[Platform.LEETCODE].queue(stats, stats)

    await coordinator.sync(user.id, 'leetcode', 'alice')
    clock.advance(60)
    result = await coordinator.sync(user.id, 'leetcode', 'alice')

    assert result.totals.total_score == 300
    assert result.totals.total_problems_solved == 20
    profile = await db.get_platform_profile(user.id, Platform.LEETCODE)
    assert profile.update_attempts == 2


async def test_github_contributions_do_not_count_as_problems(coordinator, adapters, make_user):
    user = await make_user()
    adapters[Platform.LEETCODE].queue(LeetCodeStats(score=400, problems_solved=30))
    adapters[Platform.GITHUB].queue(GitHubStats(score=250, problems_solved=500, total_commits=500))

    await coordinator.sync(user.id, 'leetcode', 'alice')
    result = await coordinator.sync(user.id, 'github', 'alice-dev')

    assert result.totals.total_score == 650
    assert result.totals.total_problems_solved == 30


async def test_unlink_clears_profile_and_keeps_row(db, coordinator, make_user, clock):
    user = await make_user()
    await coordinator.sync(user.id, 'leetcode', 'alice')
    await coordinator.sync(user.id, 'codeforces', 'alice')

    totals = await coordinator.unlink(user.id, 'leetcode')

    assert totals.total_score == 100
    assert totals.total_problems_solved == 10
    profile = await db.get_platform_profile(user.id, Platform.LEETCODE)
    assert profile is not None
    assert profile.username == ''
    assert profile.score == 0
    assert profile.last_update_status == 'cleared'

    # Re-linking right away is still subject to the cooldown
    with pytest.raises(RateLimitedError):
        await coordinator.sync(user.id, 'leetcode', 'alice')

    with pytest.raises(ValidationError):
        await coordinator.unlink(user.id, 'leetcode')


async def test_sync_all_for_user_reports_each_platform(coordinator, adapters, make_user, clock):
    user = await make_user()
    await coordinator.sync(user.id, 'leetcode', 'alice')
    clock.advance(30)
    await coordinator.sync(user.id, 'codeforces', 'alice')
    clock.advance(31)

    outcomes = {o.platform: o for o in await coordinator.sync_all_for_user(user.id)}

    assert outcomes['leetcode'].succeeded
    assert not outcomes['codeforces'].succeeded
    assert outcomes['codeforces'].remaining_seconds == 29


async def test_sync_all_users_skips_admins(coordinator, adapters, make_user, clock):
    students = [await make_user() for _ in range(3)]
    admin = await make_user(admin=True)
    for user in students + [admin]:
        await coordinator.sync(user.id, 'hackerrank', f"user{user.id}")
    clock.advance(60)

    summary = await coordinator.sync_all_users(batch_size=2)

    assert summary['users'] == 3
    assert summary['succeeded'] == 3
    assert summary['failed'] == 0
    refreshed = adapters[Platform.HACKERRANK].calls[4:]
    assert len(refreshed) == 3
    assert f"user{admin.id}" not in refreshed


async def test_recompute_user_totals_and_list_profiles(db, coordinator, make_user, clock):
    user = await make_user()
    await coordinator.sync(user.id, 'leetcode', 'alice')
    await db.update_user_aggregate(user.id, Totals(0, 0))

    totals = await coordinator.recompute_user_totals(user.id)
    assert totals.total_score == 100

    clock.advance(15)
    listing = await coordinator.list_profiles(user.id)
    assert len(listing) == 1
    assert listing[0]['platform'] == 'leetcode'
    assert listing[0]['displayName'] == 'LeetCode'
    assert listing[0]['stats']['score'] == 100
    assert listing[0]['cooldownRemaining'] == 45


async def test_empty_username_leaves_existing_profile_untouched(db, coordinator, adapters, make_user, clock):
    user = await make_user()
    await coordinator.sync(user.id, 'leetcode', 'alice')
    last_attempt = clock.now
    clock.advance(61)

    with pytest.raises(ValidationError):
        await coordinator.sync(user.id, 'leetcode', '   ')

    profile = await db.get_platform_profile(user.id, Platform.LEETCODE)
    assert profile.last_update_attempt == last_attempt
    assert profile.update_attempts == 1

    # The rejected request charged no cooldown
    result = await coordinator.sync(user.id, 'leetcode', 'alice')
    assert result.synced_at == clock.now
    assert len(adapters[Platform.LEETCODE].calls) == 2


async def test_throttle_queueing_does_not_count_against_fetch_timeout(db, make_user, clock):
    payload = {'status': True, 'models': [
        {'badge_name': 'Python', 'category_name': 'Language Proficiency', 'solved': 10, 'stars': 2},
    ]}
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
    throttle = PlatformThrottle({Platform.HACKERRANK: 0.3})

    async with create_http_client(timeout=5, transport=transport) as client:
        coordinator = ProfileSyncCoordinator(
            db,
            {Platform.HACKERRANK: HackerRankAdapter(client, throttle)},
            locks=InMemoryInFlightLocks(ttl_seconds=120),
            clock=clock,
            fetch_timeout=0.5
        )
        for _ in range(6):
            user = await make_user()
            await db.upsert_platform_profile(user.id, Platform.HACKERRANK, username=f"hacker{user.id}")

        summary = await coordinator.sync_all_users(batch_size=6)

    assert summary['profiles'] == 6
    assert summary['succeeded'] == 6
    assert summary['failed'] == 0


async def test_bulk_refresh_survives_unexpected_error_for_one_user(coordinator, make_user, clock, monkeypatch):
    students = [await make_user() for _ in range(3)]
    for user in students:
        await coordinator.sync(user.id, 'hackerrank', f"user{user.id}")
    clock.advance(60)

    sync_all_for_user = coordinator.sync_all_for_user
    broken = students[1].id

    async def flaky(user_id):
        if user_id == broken:
            raise SQLAlchemyError("database is locked")
        return await sync_all_for_user(user_id)

    monkeypatch.setattr(coordinator, 'sync_all_for_user', flaky)
    summary = await coordinator.sync_all_users(batch_size=3)

    assert summary['users'] == 3
    assert summary['succeeded'] == 2
    assert summary['usersFailed'] == 1


async def test_storage_failure_raises_database_error(db, coordinator, make_user, monkeypatch):
    user = await make_user()

    async def failing(*args, **kwargs):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(db, 'update_user_aggregate', failing)

    with pytest.raises(DatabaseError):
        await coordinator.sync(user.id, 'leetcode', 'alice')
    assert await db.get_platform_profile(user.id, Platform.LEETCODE) is None


async def test_linked_but_never_synced_profile_is_pending(db, coordinator, make_user):
    user = await make_user()
    await db.upsert_platform_profile(user.id, Platform.CODECHEF, username='chef')

    listing = await coordinator.list_profiles(user.id)
    assert listing[0]['lastUpdateStatus'] == 'pending'
    assert listing[0]['cooldownRemaining'] == 0
