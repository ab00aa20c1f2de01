"""
Services package for CodeTrack: profile sync, leaderboard and stats.
"""

from .base import BaseService
from .cooldown import CooldownGuard
from .sync_locks import InMemoryInFlightLocks, RedisInFlightLocks

__all__ = ['BaseService', 'CooldownGuard', 'InMemoryInFlightLocks', 'RedisInFlightLocks']
