from .clients import CountingClient, HostClient, new_movement
from .config import ClientConfig, ConfigError, load_config
from .exceptions import (
    AlreadyFinalizedError,
    ApiError,
    AuthError,
    CatalogLockedError,
    ConflictError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    ServerError,
    SessionClosedError,
    SessionFullError,
    TransportError,
    ValidationError,
)
from .http_client import HttpClient
from .models import Balance, LocationTag, MovementPayload, SessionStatus
from .queue_store import QueueState, QueueStore
from .sync_queue import FlushResult, SyncQueue
from .tracing import TraceContext

__version__ = "0.1.0"

__all__ = [
    "AlreadyFinalizedError",
    "ApiError",
    "AuthError",
    "Balance",
    "CatalogLockedError",
    "ClientConfig",
    "ConfigError",
    "ConflictError",
    "CountingClient",
    "FlushResult",
    "HostClient",
    "HttpClient",
    "LocationTag",
    "MovementPayload",
    "NotFoundError",
    "PermissionError",
    "QueueState",
    "QueueStore",
    "QuotaExceededError",
    "RateLimitError",
    "ServerError",
    "SessionClosedError",
    "SessionFullError",
    "SessionStatus",
    "SyncQueue",
    "TraceContext",
    "TransportError",
    "ValidationError",
    "load_config",
    "new_movement",
]
