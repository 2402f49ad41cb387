from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
    )
    NOT_SESSION_HOST = ErrorDefinition(
        "NOT_SESSION_HOST",
        "Only the session host can perform this action",
        status.HTTP_403_FORBIDDEN,
    )
    PARTICIPANT_NOT_IN_SESSION = ErrorDefinition(
        "PARTICIPANT_NOT_IN_SESSION",
        "Participant does not belong to this session",
        status.HTTP_403_FORBIDDEN,
    )
    SESSION_NOT_FOUND = ErrorDefinition(
        "SESSION_NOT_FOUND",
        "Session not found",
        status.HTTP_404_NOT_FOUND,
    )
    REPORT_NOT_FOUND = ErrorDefinition(
        "REPORT_NOT_FOUND",
        "Report not found",
        status.HTTP_404_NOT_FOUND,
    )
    SESSION_CLOSED = ErrorDefinition(
        "SESSION_CLOSED",
        "Session is closed for counting",
        status.HTTP_409_CONFLICT,
    )
    CATALOG_LOCKED = ErrorDefinition(
        "CATALOG_LOCKED",
        "Catalog cannot be cleared after counting has started",
        status.HTTP_409_CONFLICT,
    )
    REPORT_ALREADY_EXISTS = ErrorDefinition(
        "REPORT_ALREADY_EXISTS",
        "Session already has a saved report",
        status.HTTP_409_CONFLICT,
    )
    SESSION_NOT_FINALIZED = ErrorDefinition(
        "SESSION_NOT_FINALIZED",
        "Session is not finalized",
        status.HTTP_409_CONFLICT,
    )
    ALREADY_FINALIZED = ErrorDefinition(
        "ALREADY_FINALIZED",
        "Session is already closing or finalized",
        status.HTTP_400_BAD_REQUEST,
    )
    SESSION_FULL = ErrorDefinition(
        "SESSION_FULL",
        "Session has reached its participant limit",
        status.HTTP_429_TOO_MANY_REQUESTS,
    )
    SESSION_QUOTA_EXCEEDED = ErrorDefinition(
        "SESSION_QUOTA_EXCEEDED",
        "Session quota exceeded",
        status.HTTP_429_TOO_MANY_REQUESTS,
    )
    RATE_LIMITED = ErrorDefinition(
        "RATE_LIMITED",
        "Too many requests",
        status.HTTP_429_TOO_MANY_REQUESTS,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_400_BAD_REQUEST,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None, headers: dict | None = None):
        self.error = error
        self.details = details
        self.headers = headers
        super().__init__(error.message)
