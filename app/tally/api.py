from fastapi import APIRouter

from app.tally.core.config import settings
from app.tally.routers.health import router as health_router
from app.tally.routers.maintenance import router as maintenance_router
from app.tally.routers.metrics import router as metrics_router
from app.tally.routers.participation import router as participation_router
from app.tally.routers.reports import router as reports_router
from app.tally.routers.sessions import router as sessions_router
from app.tally.schemas.errors import ApiErrorResponse, ApiValidationErrorResponse

ERROR_RESPONSES = {
    400: {"model": ApiValidationErrorResponse, "description": "Validation error"},
    401: {"model": ApiErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ApiErrorResponse, "description": "Not allowed"},
    404: {"model": ApiErrorResponse, "description": "Not found"},
    409: {"model": ApiErrorResponse, "description": "Conflict with session state"},
    429: {"model": ApiErrorResponse, "description": "Limit reached"},
}

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(sessions_router, tags=["sessions"], responses=ERROR_RESPONSES)
api_router.include_router(participation_router, tags=["participation"], responses=ERROR_RESPONSES)
api_router.include_router(reports_router, tags=["reports"], responses=ERROR_RESPONSES)
api_router.include_router(maintenance_router, tags=["ops"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
