from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    trace_id: str | None
    status_code: int
    raw_payload: object | None = None

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"

    @property
    def retryable(self) -> bool:
        return False


class AuthError(ApiError):
    """Missing, expired or invalid bearer token."""


class PermissionError(ApiError):
    """Caller is not the host, or the participant is not in the session."""


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


class AlreadyFinalizedError(ValidationError):
    """Finalize was called on a session that is already closing or finalized."""


class ConflictError(ApiError):
    """409 or conflict-style errors."""


class SessionClosedError(ConflictError):
    """The session stopped accepting writes; local state is read-only."""


class CatalogLockedError(ConflictError):
    pass


class LockTimeoutError(ConflictError):
    @property
    def retryable(self) -> bool:
        return True


class SessionFullError(ApiError):
    pass


class RateLimitError(ApiError):
    """429 throttling error."""

    @property
    def retry_after_seconds(self) -> float | None:
        details = self.details if isinstance(self.details, dict) else {}
        value = details.get("retry_after")
        return float(value) if value is not None else None

    @property
    def retryable(self) -> bool:
        return True


class QuotaExceededError(ApiError):
    pass


class ServerError(ApiError):
    """5xx server-side failures."""

    @property
    def retryable(self) -> bool:
        return True


class TransportError(ApiError):
    """Network/transport failure before an HTTP response was returned."""

    @property
    def retryable(self) -> bool:
        return True
