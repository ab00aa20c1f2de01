"""
Application-wide constants for CodeTrack.

This module contains all magic numbers and configuration values used throughout
the codebase to improve maintainability and clarity.
"""

class SyncConstants:
    """Constants related to profile synchronization."""
    
    # Cooldown charged when a platform throttles us without a Retry-After
    DEFAULT_RETRY_AFTER = 60
    
    # Profile update statuses
    STATUS_PENDING = "pending"
    STATUS_SUCCESS = "success"
    STATUS_RATE_LIMITED = "rate_limited"
    STATUS_CLEARED = "cleared"

class PaginationConstants:
    """Constants for paginated leaderboards."""
    
    DEFAULT_PAGE_SIZE = 10
    
    # Podium size for the top performers cards
    TOP_PERFORMERS_LIMIT = 3

class AcademicConstants:
    """Constants for graduating-year to study-year mapping."""
    
    # Academic year starts on July 1
    ACADEMIC_YEAR_START_MONTH = 7
    
    # Number of past graduating years grouped under "Graduated"
    GRADUATED_YEAR_SPAN = 4
    
    STUDY_YEARS = ("First", "Second", "Third", "Fourth")
    GRADUATED = "Graduated"

class CacheConstants:
    """Constants for caching behavior."""
    
    DEFAULT_MAX_CACHE_SIZE = 500

class FilterConstants:
    """Sentinel values meaning "no filter" as sent by the leaderboard UI."""
    
    ALL_DEPARTMENTS = "ALL"
    ALL_SECTIONS = "All"
    ALL_GENDERS = "All"
    ALL_YEARS = "All"
