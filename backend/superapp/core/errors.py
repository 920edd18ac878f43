"""
Application error taxonomy.

Every error raised deliberately by a service derives from AppError and
carries the HTTP status the API layer answers with. The handlers registered
in main.py render them into the uniform failure envelope:

    {"success": false, "error": "...", "details": "..."}
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {"success": False, "error": self.message}
        if self.details is not None:
            payload["details"] = self.details if isinstance(self.details, (str, dict, list)) else str(self.details)
        return payload


class ValidationError(AppError):
    """Missing or malformed caller input."""
    status_code = 400
    default_message = "Invalid request"


class AuthError(AppError):
    """Missing or invalid bearer credential."""
    status_code = 401
    default_message = "Authentication required"


class NotFoundError(AppError):
    """Record does not exist (or belongs to another user)."""
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    """User-visible uniqueness violation."""
    status_code = 409
    default_message = "Already exists"


class ProviderNotConfigured(AppError):
    """Plaid credentials are not set for this deployment."""
    status_code = 503
    default_message = "Plaid credentials not configured"


class ExternalProviderError(AppError):
    """A call to the bank-data provider failed."""
    status_code = 500
    default_message = "Bank data provider request failed"


class StoreError(AppError):
    """Persistence failure other than a uniqueness violation."""
    status_code = 500
    default_message = "Database operation failed"


class StoreConflict(Exception):
    """
    Uniqueness violation on an ingestion write.

    Never reaches the API: stores turn it into a silent skip (transactions)
    or an update (accounts).
    """
