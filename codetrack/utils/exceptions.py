"""
Custom exceptions for profile sync and leaderboard queries with user-friendly error messages.
"""

from typing import Optional


class CodeTrackException(Exception):
    """Base exception for CodeTrack errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class ValidationError(CodeTrackException):
    """Raised when a sync request is malformed. Never charges a cooldown."""
    def __init__(self, reason: str):
        super().__init__(f"Validation failed: {reason}", reason)


class UserNotFoundError(CodeTrackException):
    """Raised when the requesting user does not exist."""
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found", "User not found")


class NotFoundError(CodeTrackException):
    """Raised when the platform reports no such account. Prior data is preserved."""
    def __init__(self, platform: str, username: str, hint: Optional[str] = None):
        self.platform = platform
        self.username = username
        self.hint = hint
        message = f"User {username} not found on {platform}"
        super().__init__(message, f"{message}. {hint}" if hint else message)


class RateLimitedError(CodeTrackException):
    """Raised when a cooldown applies, either ours or the platform's."""
    def __init__(self, remaining_seconds: int, platform: str = None, reason: str = None):
        self.remaining_seconds = remaining_seconds
        self.platform = platform
        super().__init__(
            reason or f"Rate limit exceeded, {remaining_seconds}s remaining",
            f"Rate limit exceeded. Please try again in {remaining_seconds} seconds."
        )


class ConcurrencyConflict(RateLimitedError):
    """Raised when a sync for the same user and platform is already in flight."""
    def __init__(self, remaining_seconds: int, platform: str = None):
        super().__init__(
            remaining_seconds,
            platform,
            reason=f"A {platform} sync is already in progress"
        )


class TransientError(CodeTrackException):
    """Raised on network failures and timeouts. Retryable, no cooldown charged."""
    def __init__(self, platform: str, details: str = None):
        self.platform = platform
        super().__init__(
            f"Failed to fetch {platform} profile: {details}",
            f"{platform} is temporarily unavailable. Please try again shortly."
        )


class InvalidQueryError(CodeTrackException):
    """Raised when leaderboard or stats parameters are invalid."""
    def __init__(self, reason: str):
        super().__init__(f"Invalid query: {reason}", reason)


class DatabaseError(CodeTrackException):
    """Raised when database operations fail."""
    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Database error during {operation}: {details}",
            "Database error occurred. Please try again later."
        )
