from fastapi import APIRouter, Depends

from app.tally.core.deps import require_maintenance_token
from app.tally.db.session import get_db
from app.tally.schemas.reports import MaintenanceRunResponse
from app.tally.services.maintenance import MaintenanceService

router = APIRouter()


@router.post("/tally/maintenance/run", response_model=MaintenanceRunResponse)
def run_maintenance(_token=Depends(require_maintenance_token), db=Depends(get_db)):
    result = MaintenanceService(db).run()
    return MaintenanceRunResponse(
        finalized_sessions=result.finalized_sessions,
        report_failures=result.report_failures,
        purged_sessions=result.purged_sessions,
        purged_movements=result.purged_movements,
    )
