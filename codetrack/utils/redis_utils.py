"""
Redis utility module for centralized Redis configuration and connection logic.

Provides secure Redis connection management with production validation.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from codetrack.config import Config

logger = logging.getLogger(__name__)


class RedisUtils:
    """Centralized Redis configuration and connection utilities."""
    
    @staticmethod
    def get_secure_redis_url() -> Optional[str]:
        """Get the configured Redis URL if it passes security validation."""
        redis_url = Config.REDIS_URL
        if not redis_url:
            return None
        if not RedisUtils._validate_redis_security(redis_url):
            logger.error("REDIS_URL contains insecure configuration")
            return None
        return redis_url
    
    @staticmethod
    def _validate_redis_security(redis_url: str) -> bool:
        """Validate that Redis URL meets security requirements."""
        if not Config.DEBUG:
            # Production mode - enforce TLS and credentials
            if not redis_url.startswith('rediss://'):
                logger.error("Production Redis must use rediss:// (TLS) protocol")
                return False
            if '@' not in redis_url:
                logger.error("Production Redis must include authentication credentials")
                return False
            return True
        
        # Development mode - allow localhost for testing
        if redis_url.startswith(('redis://localhost', 'redis://127.0.0.1', 'rediss://')):
            return True
        logger.warning(f"Potentially insecure Redis URL in development: {redis_url}")
        return True
    
    @staticmethod
    async def create_redis_client() -> Optional[redis.Redis]:
        """Create a Redis client, or None when Redis is not configured or unreachable."""
        redis_url = RedisUtils.get_secure_redis_url()
        if not redis_url:
            return None
            
        client = redis.from_url(redis_url)
        try:
            await client.ping()
        except (redis.ConnectionError, redis.TimeoutError, OSError) as e:
            logger.error(f"Failed to connect to Redis, falling back to in-process sync locks: {e}")
            await client.aclose()
            return None
        logger.info("Successfully connected to Redis")
        return client
