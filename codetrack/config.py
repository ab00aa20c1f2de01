import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Application configuration settings"""
    
    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///codetrack.db')
    
    # App settings
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    LOG_DIR = os.getenv('LOG_DIR', 'logs')
    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:3000')
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', 8000))
    
    # Sync settings
    SYNC_COOLDOWN_SECONDS = int(os.getenv('SYNC_COOLDOWN_SECONDS', 60))
    FETCH_TIMEOUT_SECONDS = float(os.getenv('FETCH_TIMEOUT_SECONDS', 15))
    INFLIGHT_LOCK_TTL_SECONDS = int(os.getenv('INFLIGHT_LOCK_TTL_SECONDS', 120))
    SYNC_BATCH_SIZE = int(os.getenv('SYNC_BATCH_SIZE', 50))
    
    # Leaderboard settings
    MAX_PAGE_SIZE = int(os.getenv('MAX_PAGE_SIZE', 100))
    STATS_CACHE_TTL = int(os.getenv('STATS_CACHE_TTL', 60))
    
    # External services
    GITHUB_ACCESS_TOKEN = os.getenv('GITHUB_ACCESS_TOKEN')
    REDIS_URL = os.getenv('REDIS_URL')
    
    @classmethod
    def get_cors_origins(cls):
        """Get list of allowed CORS origins"""
        if not cls.FRONTEND_URL:
            return []
        return [origin.strip() for origin in cls.FRONTEND_URL.split(',') if origin.strip()]
    
    @classmethod
    def validate(cls):
        """Validate that configuration values are usable"""
        if not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL is required")
        if cls.SYNC_COOLDOWN_SECONDS <= 0:
            raise ValueError("SYNC_COOLDOWN_SECONDS must be positive")
        if cls.FETCH_TIMEOUT_SECONDS <= 0:
            raise ValueError("FETCH_TIMEOUT_SECONDS must be positive")
        if cls.INFLIGHT_LOCK_TTL_SECONDS < cls.FETCH_TIMEOUT_SECONDS:
            raise ValueError("INFLIGHT_LOCK_TTL_SECONDS must cover FETCH_TIMEOUT_SECONDS")
        if not 1 <= cls.MAX_PAGE_SIZE <= 500:
            raise ValueError("MAX_PAGE_SIZE must be between 1 and 500")
