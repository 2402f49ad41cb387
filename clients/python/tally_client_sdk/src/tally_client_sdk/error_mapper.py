from __future__ import annotations

from typing import Mapping

from .exceptions import (
    AlreadyFinalizedError,
    ApiError,
    AuthError,
    CatalogLockedError,
    ConflictError,
    LockTimeoutError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    ServerError,
    SessionClosedError,
    SessionFullError,
    ValidationError,
)

_CODE_OVERRIDES: dict[str, type[ApiError]] = {
    "SESSION_CLOSED": SessionClosedError,
    "CATALOG_LOCKED": CatalogLockedError,
    "ALREADY_FINALIZED": AlreadyFinalizedError,
    "SESSION_FULL": SessionFullError,
    "SESSION_QUOTA_EXCEEDED": QuotaExceededError,
    "LOCK_TIMEOUT": LockTimeoutError,
}


def map_error(status_code: int, payload: Mapping[str, object] | None, trace_id: str | None) -> ApiError:
    payload = payload or {}
    code = str(payload.get("code") or "HTTP_ERROR")
    message = str(payload.get("message") or "Request failed")
    details = payload.get("details")
    payload_trace_id = payload.get("trace_id")
    resolved_trace_id = str(payload_trace_id) if payload_trace_id else trace_id
    mapped: type[ApiError]
    if code in _CODE_OVERRIDES:
        mapped = _CODE_OVERRIDES[code]
    elif status_code == 401:
        mapped = AuthError
    elif status_code == 403:
        mapped = PermissionError
    elif status_code == 404:
        mapped = NotFoundError
    elif status_code in {400, 422}:
        mapped = ValidationError
    elif status_code == 409:
        mapped = ConflictError
    elif status_code == 429:
        mapped = RateLimitError
    elif status_code >= 500:
        mapped = ServerError
    else:
        mapped = ApiError
    return mapped(
        code=code,
        message=message,
        details=details,
        trace_id=resolved_trace_id,
        status_code=status_code,
        raw_payload=dict(payload),
    )
