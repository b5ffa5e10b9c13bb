"""
Application error taxonomy.
Each error carries the HTTP status it maps to and a message that is safe to show to the caller.
"""
from typing import Any, Optional


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input. The message is the first violation."""
    status_code = 400
    default_message = "Invalid input"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(AppError):
    """Acting on another user's resource."""
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    """
    Resource absent, or present but not owned by the caller.
    Both cases answer the same way so existence is not leaked.
    """
    status_code = 404
    default_message = "Not found"


class UpstreamError(AppError):
    """Billing provider failure. The provider's error is logged, never returned."""
    status_code = 502
    default_message = "Billing provider request failed"


class PersistenceError(AppError):
    status_code = 500
    default_message = "Failed to save changes"


class ConfigurationError(AppError):
    status_code = 500
    default_message = "Service is not configured"
