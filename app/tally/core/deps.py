import hmac

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import ValidationError

from app.tally.core.config import settings
from app.tally.core.context import RequestContext, build_request_context
from app.tally.core.error_catalog import AppError, ErrorCatalog
from app.tally.core.security import TokenData, decode_token, oauth2_scheme

_maintenance_scheme = HTTPBearer(auto_error=False)


def get_current_token_data(token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def require_request_context(
    request: Request,
    token_data: TokenData = Depends(get_current_token_data),
) -> RequestContext:
    if not token_data.sub:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    context = build_request_context(
        user_id=token_data.sub,
        company_id=token_data.company_id,
        trace_id=getattr(request.state, "trace_id", ""),
    )
    request.state.context = context
    request.state.user_id = token_data.sub
    return context


def require_maintenance_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_maintenance_scheme),
) -> None:
    expected = settings.MAINTENANCE_TOKEN
    if not expected:
        raise AppError(ErrorCatalog.PERMISSION_DENIED, details={"message": "maintenance endpoint disabled"})
    if credentials is None or not hmac.compare_digest(credentials.credentials, expected):
        raise AppError(ErrorCatalog.INVALID_TOKEN)


__all__ = [
    "get_current_token_data",
    "require_request_context",
    "require_maintenance_token",
]
