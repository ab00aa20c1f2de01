from sqlalchemy import (
    Column, Integer, String, DateTime, JSON, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
from enum import Enum

from codetrack.constants import SyncConstants

Base = declarative_base()

class Platform(Enum):
    LEETCODE = "leetcode"
    CODEFORCES = "codeforces"
    CODECHEF = "codechef"
    GEEKSFORGEEKS = "geeksforgeeks"
    HACKERRANK = "hackerrank"
    GITHUB = "github"

    @classmethod
    def from_key(cls, key: str) -> "Platform":
        """Resolve a platform key, raising ValueError for unsupported platforms."""
        return cls((key or "").strip().lower())

class UserType(Enum):
    USER = "user"
    ADMIN = "admin"

class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False, unique=True)
    roll_number = Column(String(50), nullable=False, unique=True)
    department = Column(String(20), nullable=False, index=True)
    section = Column(String(10), nullable=True, index=True)
    graduating_year = Column(Integer, nullable=True, index=True)
    gender = Column(String(10), nullable=True)
    user_type = Column(String(10), nullable=False, default=UserType.USER.value)

    # Cached aggregate, refreshed by every successful sync
    total_score = Column(Integer, nullable=False, default=0)
    total_problems_solved = Column(Integer, nullable=False, default=0)
    last_profile_sync = Column(DateTime, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=func.now())
    last_active = Column(DateTime, default=func.now())

    profiles = relationship("PlatformProfile", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN.value

    def __repr__(self):
        return f"<User(id={self.id}, roll_number='{self.roll_number}', total_score={self.total_score})>"

class PlatformProfile(Base):
    __tablename__ = 'platform_profiles'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    platform = Column(String(20), nullable=False)
    username = Column(String(100), nullable=False, default='')  # Empty means not linked

    # Common normalized stats
    score = Column(Integer, nullable=False, default=0)
    problems_solved = Column(Integer, nullable=False, default=0)
    rating = Column(Integer, nullable=False, default=0)
    contests_participated = Column(Integer, nullable=False, default=0)

    # Platform-specific fields of the stats variant
    details = Column(JSON, nullable=True)

    # Sync bookkeeping
    last_updated = Column(DateTime, nullable=True)         # Last successful sync
    last_update_attempt = Column(DateTime, nullable=True)  # Last attempt that charged a cooldown
    cooldown_seconds = Column(Integer, nullable=False, default=60)
    last_update_status = Column(String(20), nullable=False, default=SyncConstants.STATUS_PENDING)
    last_update_error = Column(String(500), nullable=True)
    update_attempts = Column(Integer, nullable=False, default=0)

    user = relationship("User", back_populates="profiles")

    __table_args__ = (
        UniqueConstraint('user_id', 'platform', name='uq_profile_user_platform'),
        CheckConstraint('cooldown_seconds >= 0', name='ck_profile_cooldown_non_negative'),
    )

    @property
    def is_linked(self) -> bool:
        return bool(self.username and self.username.strip())

    def __repr__(self):
        return f"<PlatformProfile(user_id={self.user_id}, platform='{self.platform}', username='{self.username}')>"
