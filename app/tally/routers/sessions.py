from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.tally.core.config import settings
from app.tally.core.context import RequestContext
from app.tally.core.deps import require_request_context
from app.tally.db.models import CountSession, Participant
from app.tally.db.session import get_db
from app.tally.schemas.catalog import CatalogClearResponse, CatalogImportRequest, CatalogImportResponse
from app.tally.schemas.movements import BalanceResponse
from app.tally.schemas.sessions import (
    FinalizeResponse,
    HostSessionListResponse,
    HostSessionSummary,
    JoinSessionResponse,
    ParticipantSummary,
    ParticipantSyncStateResponse,
    PendingSyncResponse,
    ReportPreviewResponse,
    ReportRowResponse,
    ReportSummaryResponse,
    ResetResponse,
    SessionCreateRequest,
    SessionSummary,
)
from app.tally.services.aggregation import AggregateSnapshot
from app.tally.services.audit import AuditService, payload_from_context
from app.tally.services.catalog import CatalogRowInput, CatalogService
from app.tally.services.pending_sync import build_pending_sync_report
from app.tally.services.sessions import SessionService


router = APIRouter()


def session_summary(session: CountSession) -> SessionSummary:
    return SessionSummary(
        id=str(session.id),
        name=session.name,
        access_code=session.access_code,
        mode=session.mode,
        status=session.status,
        created_at=session.created_at,
        closing_started_at=session.closing_started_at,
        finalized_at=session.finalized_at,
    )


def participant_summary(participant: Participant) -> ParticipantSummary:
    return ParticipantSummary(
        id=str(participant.id),
        display_name=participant.display_name,
        status=participant.status,
        joined_at=participant.joined_at,
        left_at=participant.left_at,
    )


def balance_responses(snapshot: AggregateSnapshot) -> list[BalanceResponse]:
    return [
        BalanceResponse(
            barcode=balance.barcode,
            store=balance.store,
            warehouse=balance.warehouse,
            total=balance.total,
        )
        for balance in snapshot.sorted_balances()
    ]


def _audit(db, context: RequestContext, action: str, session_id, metadata: dict | None = None) -> None:
    AuditService(db).record_event(
        payload_from_context(
            context,
            action=action,
            entity_type="count_session",
            entity_id=session_id,
            metadata=metadata,
        )
    )


@router.post("/tally/sessions", response_model=SessionSummary, status_code=201)
def create_session(
    payload: SessionCreateRequest,
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    session = SessionService(db).create_session(
        host_id=context.user_id,
        company_id=context.company_id,
        name=payload.name,
    )
    _audit(db, context, "count_session.create", session.id, {"access_code": session.access_code})
    return session_summary(session)


@router.get("/tally/sessions", response_model=HostSessionListResponse)
def list_sessions(
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    rows = []
    for session, participant_count, movement_count in SessionService(db).list_host_sessions(context.user_id):
        rows.append(
            HostSessionSummary(
                **session_summary(session).model_dump(),
                participant_count=participant_count,
                movement_count=movement_count,
            )
        )
    return HostSessionListResponse(rows=rows, total=len(rows))


@router.post("/tally/sessions/individual", response_model=JoinSessionResponse)
def ensure_individual_session(
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    session, participant = SessionService(db).ensure_individual_session(
        user_id=context.user_id,
        company_id=context.company_id,
    )
    return JoinSessionResponse(session=session_summary(session), participant=participant_summary(participant))


@router.get("/tally/sessions/{session_id}", response_model=SessionSummary)
def get_session(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    return session_summary(SessionService(db).get_host_session(session_id, context.user_id))


@router.post("/tally/sessions/{session_id}/catalog", response_model=CatalogImportResponse)
def import_catalog(
    session_id: UUID,
    payload: CatalogImportRequest,
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    session = SessionService(db).get_host_session(session_id, context.user_id)
    result = CatalogService(db).import_rows(
        session,
        [
            CatalogRowInput(
                product_code=row.product_code,
                barcode=row.barcode,
                description=row.description,
                system_balance=row.system_balance,
            )
            for row in payload.rows
        ],
    )
    _audit(
        db,
        context,
        "count_session.catalog_import",
        session_id,
        {"inserted": result.inserted, "conflicts": len(result.conflicts)},
    )
    return CatalogImportResponse(session_id=str(session_id), inserted=result.inserted, conflicts=result.conflicts)


@router.delete("/tally/sessions/{session_id}/catalog", response_model=CatalogClearResponse)
def clear_catalog(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    session = SessionService(db).get_host_session(session_id, context.user_id)
    deleted = CatalogService(db).clear(session)
    _audit(db, context, "count_session.catalog_clear", session_id, {"deleted": deleted})
    return CatalogClearResponse(session_id=str(session_id), deleted=deleted)


@router.get("/tally/sessions/{session_id}/pending", response_model=PendingSyncResponse)
def pending_sync(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    session = SessionService(db).get_host_session(session_id, context.user_id)
    report = build_pending_sync_report(db, session.id)
    return PendingSyncResponse(
        session_id=str(session.id),
        participants=[ParticipantSyncStateResponse(**state.__dict__) for state in report.participants],
        total_movements=report.total_movements,
        safe_to_close=report.safe_to_close,
        recommendation=report.recommendation,
        window_seconds=settings.PENDING_SYNC_WINDOW_SECONDS,
    )


@router.get("/tally/sessions/{session_id}/report", response_model=ReportPreviewResponse)
def preview_report(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    preview = SessionService(db).preview_report(session_id, context.user_id)
    return ReportPreviewResponse(
        session=session_summary(preview.session),
        summary=ReportSummaryResponse(
            **preview.summary.__dict__,
            participant_count=preview.participant_count,
            duration_seconds=preview.duration_seconds,
        ),
        rows=[
            ReportRowResponse(
                barcode=row.barcode,
                product_code=row.product_code,
                description=row.description,
                system_balance=row.system_balance,
                counted_total=row.counted_total,
                counted_store=row.counted_store,
                counted_warehouse=row.counted_warehouse,
                difference=row.difference,
                registered=row.registered,
            )
            for row in preview.rows
        ],
    )


@router.post("/tally/sessions/{session_id}/finalize", response_model=FinalizeResponse)
def finalize_session(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    report = SessionService(db).finalize_session(session_id, context.user_id)
    _audit(db, context, "count_session.finalize", session_id, {"report_id": str(report.id)})
    return FinalizeResponse(report_id=str(report.id), session_id=str(session_id), status="FINALIZED")


@router.post("/tally/sessions/{session_id}/report/regenerate", response_model=FinalizeResponse)
def regenerate_report(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    report = SessionService(db).regenerate_report(session_id, context.user_id)
    _audit(db, context, "count_session.report_regenerate", session_id, {"report_id": str(report.id)})
    return FinalizeResponse(report_id=str(report.id), session_id=str(session_id), status="FINALIZED")


@router.post("/tally/sessions/{session_id}/reset", response_model=ResetResponse)
def reset_session(
    session_id: UUID,
    context: RequestContext = Depends(require_request_context),
    db=Depends(get_db),
):
    deleted = SessionService(db).reset_session(session_id, context.user_id)
    _audit(db, context, "count_session.reset", session_id, {"deleted_movements": deleted})
    return ResetResponse(session_id=str(session_id), deleted_movements=deleted)
