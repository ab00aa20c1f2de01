from datetime import datetime, timedelta

from codetrack.database.models import Platform
from codetrack.services.cooldown import CooldownGuard

NOW = datetime(2025, 3, 10, 12, 0, 0)


def guard(clock=lambda: NOW):
    return CooldownGuard(db=None, clock=clock, default_cooldown=60)


def test_no_previous_attempt_is_allowed():
    status = guard().evaluate(None, None, NOW)
    assert status.allowed
    assert status.remaining_seconds == 0


def test_remaining_is_cooldown_minus_elapsed():
    status = guard().evaluate(NOW - timedelta(seconds=5), 60, NOW)
    assert not status.allowed
    assert status.remaining_seconds == 55


def test_remaining_rounds_up():
    status = guard().evaluate(NOW - timedelta(seconds=59, milliseconds=200), 60, NOW)
    assert not status.allowed
    assert status.remaining_seconds == 1


def test_window_closes_exactly_at_cooldown():
    assert guard().evaluate(NOW - timedelta(seconds=60), 60, NOW).allowed


def test_stored_cooldown_overrides_default():
    status = guard().evaluate(NOW - timedelta(seconds=30), 120, NOW)
    assert status.remaining_seconds == 90


def test_missing_stored_cooldown_uses_default():
    status = guard().evaluate(NOW - timedelta(seconds=10), None, NOW)
    assert status.remaining_seconds == 50


async def test_check_reads_profile_without_writing(db, make_user, clock):
    user = await make_user()
    checker = CooldownGuard(db, clock=clock, default_cooldown=60)
    assert (await checker.check(user.id, Platform.LEETCODE)).allowed

    await db.upsert_platform_profile(
        user.id, Platform.LEETCODE, username='alice', last_update_attempt=clock(), cooldown_seconds=60
    )
    clock.advance(20)
    first = await checker.check(user.id, Platform.LEETCODE)
    second = await checker.check(user.id, Platform.LEETCODE)
    assert first == second
    assert first.remaining_seconds == 40

    profile = await db.get_platform_profile(user.id, Platform.LEETCODE)
    assert profile.last_update_attempt == clock.now - timedelta(seconds=20)
