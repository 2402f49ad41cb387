from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.tally.core.context import RequestContext
from app.tally.core.deps import require_request_context
from app.tally.core.error_catalog import AppError, ErrorCatalog
from app.tally.db.models import SavedReport
from app.tally.db.session import get_db
from app.tally.repos.reports import ReportRepository
from app.tally.schemas.reports import SavedReportDetail, SavedReportListResponse, SavedReportSummary

router = APIRouter()


def _report_summary(report: SavedReport) -> SavedReportSummary:
    return SavedReportSummary(
        id=str(report.id),
        session_id=str(report.session_id),
        filename=report.filename,
        row_count=report.row_count,
        created_at=report.created_at,
    )


def _owned_report(db, report_id: UUID, owner_id: str) -> SavedReport:
    report = ReportRepository(db).get(report_id)
    # Other owners' reports are indistinguishable from missing ones.
    if report is None or report.owner_id != owner_id:
        raise AppError(ErrorCatalog.REPORT_NOT_FOUND)
    return report


@router.get("/tally/reports", response_model=SavedReportListResponse)
def list_reports(context: RequestContext = Depends(require_request_context), db=Depends(get_db)):
    rows = [_report_summary(report) for report in ReportRepository(db).list_for_owner(context.user_id)]
    return SavedReportListResponse(rows=rows, total=len(rows))


@router.get("/tally/reports/{report_id}", response_model=SavedReportDetail)
def get_report(report_id: UUID, context: RequestContext = Depends(require_request_context), db=Depends(get_db)):
    report = _owned_report(db, report_id, context.user_id)
    return SavedReportDetail(**_report_summary(report).model_dump(), content=report.content)


@router.get("/tally/reports/{report_id}/download")
def download_report(report_id: UUID, context: RequestContext = Depends(require_request_context), db=Depends(get_db)):
    report = _owned_report(db, report_id, context.user_id)
    return Response(
        content=report.content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )
