from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.tally.core.config import settings


def client_address(request: Request) -> str:
    """Key function for anonymous endpoints: the caller's address."""
    return f"ip:{get_remote_address(request)}"


def join_rate_limit() -> str:
    return settings.JOIN_RATE_LIMIT


# Storage is a URI so several instances can share counters (e.g. redis://host:6379).
limiter = Limiter(
    key_func=client_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)
