from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.tally.core.context import build_request_context
from app.tally.core.security import decode_token


class IdentityContextMiddleware(BaseHTTPMiddleware):
    """Attach the caller's identity to request state for logging.

    Authorization itself happens in route dependencies.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user_id = None
        request.state.company_id = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                payload = decode_token(token)
            except JWTError:
                payload = {}
            request.state.user_id = payload.get("sub")
            request.state.company_id = payload.get("company_id")

        request.state.context = build_request_context(
            user_id=request.state.user_id,
            company_id=request.state.company_id,
            trace_id=getattr(request.state, "trace_id", ""),
        )
        return await call_next(request)
