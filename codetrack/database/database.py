from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Optional, List, Tuple, Any

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import select, func

from codetrack.config import Config
from codetrack.data_models.leaderboard import LeaderboardFilters
from codetrack.data_models.profile import Totals
from codetrack.database.models import Base, User, PlatformProfile, Platform, UserType
from codetrack.utils.logger import setup_logger
from codetrack.utils.ranking import RankingUtility


class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = database_url or Config.DATABASE_URL
        self.engine = None
        self.session_factory = None

    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")

        # Convert sqlite URL to async if needed
        database_url = self.database_url
        connect_args = {}
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///')
        if database_url.startswith('sqlite+aiosqlite'):
            connect_args['timeout'] = 30

        self.engine = create_async_engine(
            database_url,
            echo=Config.DEBUG,
            future=True,
            connect_args=connect_args
        )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        # Create all tables
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database initialized successfully")

    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.

        All operations within the context commit together on success, or roll
        back together on failure.

        Usage:
            async with db.transaction() as session:
                await db.upsert_platform_profile(..., session=session)
                await db.update_user_aggregate(..., session=session)
                # Both writes commit together here

        The caller passes the yielded session to every participating
        operation. Exceptions must propagate out of the context for rollback
        to occur.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def _scope(self, session: Optional[AsyncSession]):
        """Reuse the caller's session, or open a committing one."""
        if session is not None:
            yield session
        else:
            async with self.transaction() as own_session:
                yield own_session

    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()

    # User operations

    async def create_user(
        self,
        name: str,
        email: str,
        roll_number: str,
        department: str,
        section: Optional[str] = None,
        graduating_year: Optional[int] = None,
        gender: Optional[str] = None,
        user_type: str = UserType.USER.value,
        session: Optional[AsyncSession] = None
    ) -> User:
        async with self._scope(session) as s:
            user = User(
                name=name,
                email=email.lower(),
                roll_number=roll_number.upper(),
                department=department,
                section=section,
                graduating_year=graduating_year,
                gender=gender,
                user_type=user_type,
                total_score=0,
                total_problems_solved=0
            )
            s.add(user)
            await s.flush()
            self.logger.info(f"Created user {user.id} ({user.roll_number})")
            return user

    async def get_user(self, user_id: int, session: Optional[AsyncSession] = None) -> Optional[User]:
        async with self._scope(session) as s:
            return await s.get(User, user_id)

    async def get_user_ids(self, include_admins: bool = False) -> List[int]:
        """All user ids in id order, used by bulk refresh."""
        query = select(User.id).order_by(User.id)
        if not include_admins:
            query = query.where(User.user_type != UserType.ADMIN.value)
        async with self.get_session() as session:
            return list((await session.execute(query)).scalars())

    # Platform profile operations

    async def get_platform_profile(
        self,
        user_id: int,
        platform: Platform,
        session: Optional[AsyncSession] = None
    ) -> Optional[PlatformProfile]:
        async with self._scope(session) as s:
            result = await s.execute(
                select(PlatformProfile).where(
                    PlatformProfile.user_id == user_id,
                    PlatformProfile.platform == platform.value
                )
            )
            return result.scalar_one_or_none()

    async def get_platform_profiles(
        self,
        user_id: int,
        session: Optional[AsyncSession] = None
    ) -> List[PlatformProfile]:
        async with self._scope(session) as s:
            result = await s.execute(
                select(PlatformProfile)
                .where(PlatformProfile.user_id == user_id)
                .order_by(PlatformProfile.platform)
            )
            return list(result.scalars())

    async def get_profiles_for_users(
        self,
        user_ids: List[int],
        session: Optional[AsyncSession] = None
    ) -> List[PlatformProfile]:
        """Load the profiles of many users in one IN query."""
        if not user_ids:
            return []
        async with self._scope(session) as s:
            result = await s.execute(
                select(PlatformProfile).where(PlatformProfile.user_id.in_(user_ids))
            )
            return list(result.scalars())

    async def upsert_platform_profile(
        self,
        user_id: int,
        platform: Platform,
        session: Optional[AsyncSession] = None,
        **values: Any
    ) -> PlatformProfile:
        """Create the (user, platform) row if missing, then apply ``values``."""
        async with self._scope(session) as s:
            profile = await self.get_platform_profile(user_id, platform, session=s)
            if profile is None:
                profile = PlatformProfile(
                    user_id=user_id,
                    platform=platform.value,
                    username='',
                    score=0,
                    problems_solved=0,
                    rating=0,
                    contests_participated=0,
                    cooldown_seconds=Config.SYNC_COOLDOWN_SECONDS,
                    update_attempts=0
                )
                s.add(profile)
            for key, value in values.items():
                if not hasattr(PlatformProfile, key):
                    raise AttributeError(f"PlatformProfile has no column {key}")
                setattr(profile, key, value)
            await s.flush()
            return profile

    async def update_user_aggregate(
        self,
        user_id: int,
        totals: Totals,
        synced_at: Optional[datetime] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        async with self._scope(session) as s:
            user = await s.get(User, user_id)
            if user is None:
                return None
            user.total_score = totals.total_score
            user.total_problems_solved = totals.total_problems_solved
            if synced_at is not None:
                user.last_profile_sync = synced_at
            await s.flush()
            return user

    # Leaderboard queries

    async def query_users(
        self,
        filters: LeaderboardFilters,
        sort_by: str,
        order: str,
        page: int,
        page_size: int,
        today: date,
        session: Optional[AsyncSession] = None
    ) -> Tuple[List[Any], int]:
        """Return one ranked page of filtered users plus the filtered total."""
        ranking_cte = RankingUtility.create_user_ranking_cte(filters, today, sort_by, order)
        async with self._scope(session) as s:
            total = await s.scalar(select(func.count()).select_from(ranking_cte))
            offset = (page - 1) * page_size
            result = await s.execute(
                select(ranking_cte)
                .order_by(ranking_cte.c.rank)
                .limit(page_size)
                .offset(offset)
            )
            return list(result), total or 0
