"""
Shared fixtures for the CodeTrack test suite.

Every test gets its own SQLite file database, a controllable clock and
scripted platform adapters so no test touches the network.
"""

import asyncio
import itertools
from datetime import datetime, timedelta

import pytest

from codetrack.data_models.platform_stats import STATS_VARIANTS
from codetrack.data_models.profile import Totals
from codetrack.database.database import Database
from codetrack.database.models import Platform, UserType
from codetrack.platforms.base import PlatformUnavailable
from codetrack.services.profile_sync import ProfileSyncCoordinator
from codetrack.services.sync_locks import InMemoryInFlightLocks


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2025, 3, 10, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeAdapter:
    """Scripted adapter. Queued items are returned or raised in order."""

    def __init__(self, platform: Platform):
        self.platform = platform
        self.results = []
        self.calls = []
        self.gate = None
        self.started = asyncio.Event()
        self.delay = 0.0

    def queue(self, *results):
        self.results.extend(results)
        return self

    def default_stats(self):
        return STATS_VARIANTS[self.platform](score=100, problems_solved=10)

    async def fetch(self, username: str, timeout=None):
        self.calls.append(username)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        try:
            return await asyncio.wait_for(self._respond(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise PlatformUnavailable(self.platform, username, f"timed out after {timeout}s") from e

    async def _respond(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results.pop(0) if self.results else self.default_stats()
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'codetrack_test.db'}")
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def adapters():
    return {platform: FakeAdapter(platform) for platform in Platform}


@pytest.fixture
def coordinator(db, adapters, clock):
    return ProfileSyncCoordinator(
        db, adapters, locks=InMemoryInFlightLocks(ttl_seconds=120), clock=clock, fetch_timeout=1.0
    )


@pytest.fixture
def make_user(db):
    """Factory creating users with unique email and roll number."""
    counter = itertools.count(1)

    async def _make_user(
        name=None,
        department='CSE',
        section='A',
        graduating_year=2026,
        gender='Male',
        admin=False,
        total_score=0,
        total_problems=0,
        email=None,
        roll_number=None
    ):
        n = next(counter)
        user = await db.create_user(
            name=name or f"Student {n}",
            email=email or f"student{n}@college.edu",
            roll_number=roll_number or f"22CS{n:03d}",
            department=department,
            section=section,
            graduating_year=graduating_year,
            gender=gender,
            user_type=UserType.ADMIN.value if admin else UserType.USER.value,
        )
        if total_score or total_problems:
            await db.update_user_aggregate(user.id, Totals(total_score, total_problems))
            user.total_score = total_score
            user.total_problems_solved = total_problems
        return user

    return _make_user
