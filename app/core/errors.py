"""
Error vocabulary shared by every service.

The string values are part of the public contract: callers branch on them,
so they must never change.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    USERNAME_EXISTS = "username-exists"
    USER_NOT_FOUND = "user-not-found"
    GROUP_NOT_FOUND = "group-not-found"
    SESSION_NOT_FOUND = "session-not-found"
    ALREADY_MEMBER = "already-member"
    HOST_CANNOT_LEAVE = "host-cannot-leave"
    UNKNOWN_ERROR = "unknown-error"

    INVALID_USERNAME = "invalid-username"
    INVALID_CAPACITY = "invalid-capacity"
    CARPOOL_NOT_FOUND = "carpool-not-found"
    CARPOOL_FULL = "carpool-full"
    CARPOOL_CONFLICT = "carpool-conflict"
    NOT_HOST = "not-host"
    CONCURRENT_MODIFICATION = "concurrent-modification"


NOT_FOUND_CODES = {
    ErrorCode.USER_NOT_FOUND,
    ErrorCode.GROUP_NOT_FOUND,
    ErrorCode.SESSION_NOT_FOUND,
    ErrorCode.CARPOOL_NOT_FOUND,
}

CONFLICT_CODES = {
    ErrorCode.USERNAME_EXISTS,
    ErrorCode.ALREADY_MEMBER,
    ErrorCode.HOST_CANNOT_LEAVE,
    ErrorCode.CARPOOL_FULL,
    ErrorCode.CARPOOL_CONFLICT,
    ErrorCode.CONCURRENT_MODIFICATION,
}

VALIDATION_CODES = {
    ErrorCode.INVALID_USERNAME,
    ErrorCode.INVALID_CAPACITY,
}


class DatabaseException(Exception):
    """Raised to stream consumers; regular operations return a Failure instead."""

    def __init__(self, code: ErrorCode, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class MutationRejected(Exception):
    """Business-rule violation raised while deriving a new nested collection."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def describe_exception(exc: Exception) -> dict:
    """Keep the transport's own code/message for diagnostics."""
    return {
        "code": getattr(exc, "code", None),
        "message": getattr(exc, "message", None) or str(exc),
        "type": type(exc).__name__,
    }
