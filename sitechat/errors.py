# FILE: sitechat/errors.py
"""
Error taxonomy shared by the queue, retrieval and chat layers.

Every failure that can reach a caller maps to exactly one ErrorType.
"""

from enum import Enum
from typing import List, Optional


class ErrorType(str, Enum):
    PROVIDER_ERROR = "PROVIDER_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SiteChatError(Exception):
    """Base class for SiteChat errors."""
    error_type = ErrorType.INTERNAL_ERROR


class ProviderError(SiteChatError):
    """Upstream embedding/generation failure (rate limit, auth, malformed response, timeout)."""
    error_type = ErrorType.PROVIDER_ERROR

    def __init__(self, message: str, provider: str = "unknown", status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        prefix = f"{provider} error"
        if status_code is not None:
            prefix += f" ({status_code})"
        super().__init__(f"{prefix}: {message}")


class ValidationError(SiteChatError):
    """Missing or invalid request fields."""
    error_type = ErrorType.VALIDATION_ERROR

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


class NotFoundError(SiteChatError):
    error_type = ErrorType.NOT_FOUND


class PersistenceError(SiteChatError):
    """Data-store write failure."""
    error_type = ErrorType.PERSISTENCE_ERROR
