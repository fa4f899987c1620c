"""Custom exception classes for bot errors.

Provides structured error handling with error codes. None of these are fatal
to the process: every component boundary catches and logs them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for bot errors."""

    # Credential errors
    TOKEN_REQUEST_FAILED = "TOKEN_REQUEST_FAILED"
    INVALID_TOKEN_RESPONSE = "INVALID_TOKEN_RESPONSE"

    # Discovery errors
    INVALID_RACE_LISTING = "INVALID_RACE_LISTING"
    INVALID_RACE_DETAIL = "INVALID_RACE_DETAIL"

    # Session errors
    DUPLICATE_SESSION = "DUPLICATE_SESSION"


class BotError(Exception):
    """Base exception for bot errors.

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable error message
        details: Additional error details
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code if isinstance(code, str) else code.value
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "errorCode": self.code,
            "errorMessage": self.message,
            "details": self.details,
        }


class CredentialError(BotError):
    """Raised when the token endpoint returns an unusable payload."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code=ErrorCode.INVALID_TOKEN_RESPONSE,
            message=message,
            details=details,
        )


class DiscoveryError(BotError):
    """Raised when a race listing or race detail payload is unusable."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_RACE_LISTING,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(code=code, message=message, details=details)


class DuplicateSessionError(BotError):
    """Raised when a second live session is registered for the same race."""

    def __init__(self, race_name: str):
        super().__init__(
            code=ErrorCode.DUPLICATE_SESSION,
            message=f"Race already has a live session: {race_name}",
            details={"raceName": race_name},
        )
