from __future__ import annotations

import asyncio
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool

from app.tally.core.config import settings
from app.tally.core.error_catalog import AppError, ErrorCatalog
from app.tally.core.rate_limit import join_rate_limit, limiter
from app.tally.db.session import get_db
from app.tally.repos.movements import MovementRepository
from app.tally.routers.sessions import balance_responses, participant_summary, session_summary
from app.tally.schemas.catalog import ProductCountResponse, ProductListResponse
from app.tally.schemas.movements import AggregatesResponse, MovementBatchRequest, MovementBatchResponse
from app.tally.schemas.sessions import JoinSessionRequest, JoinSessionResponse, ParticipantSummary, SessionStatusResponse
from app.tally.services.catalog import CatalogService
from app.tally.services.ledger import MovementDraft, MovementLedgerService
from app.tally.services.sessions import SessionService


router = APIRouter()


@router.post("/tally/join", response_model=JoinSessionResponse)
@limiter.limit(join_rate_limit)
async def join_session(request: Request, payload: JoinSessionRequest, db=Depends(get_db)):
    try:
        return await run_in_threadpool(_join, db, payload)
    except AppError as exc:
        if exc.error.code == ErrorCatalog.SESSION_NOT_FOUND.code and settings.JOIN_INVALID_CODE_DELAY_SECONDS > 0:
            # Slows down access-code guessing without holding a worker thread.
            await asyncio.sleep(settings.JOIN_INVALID_CODE_DELAY_SECONDS)
        raise


def _join(db, payload: JoinSessionRequest) -> JoinSessionResponse:
    session, participant = SessionService(db).join_session(
        access_code=payload.access_code,
        participant_name=payload.participant_name,
    )
    return JoinSessionResponse(session=session_summary(session), participant=participant_summary(participant))


@router.post("/tally/sessions/{session_id}/movements", response_model=MovementBatchResponse)
def record_movements(session_id: UUID, payload: MovementBatchRequest, db=Depends(get_db)):
    result = MovementLedgerService(db).record_movements(
        session_id,
        payload.participant_id,
        [
            MovementDraft(
                client_id=str(item.client_id),
                barcode=item.barcode,
                quantity=item.quantity,
                location_tag=item.location_tag,
                timestamp_ms=item.timestamp,
            )
            for item in payload.movements
        ],
    )
    return MovementBatchResponse(
        accepted_count=result.accepted_count,
        duplicate_count=result.duplicate_count,
        updated_aggregates=balance_responses(result.aggregates),
    )


@router.get("/tally/sessions/{session_id}/status", response_model=SessionStatusResponse)
def session_status(session_id: UUID, db=Depends(get_db)):
    session = SessionService(db).get_open_session(session_id)
    return SessionStatusResponse(session_id=str(session.id), status=session.status)


@router.get("/tally/sessions/{session_id}/aggregates", response_model=AggregatesResponse)
def session_aggregates(session_id: UUID, db=Depends(get_db)):
    snapshot = MovementLedgerService(db).session_aggregates(session_id)
    return AggregatesResponse(
        session_id=str(session_id),
        status="OPEN",
        rows=balance_responses(snapshot),
        total_movements=MovementRepository(db).count_for_session(session_id),
    )


@router.get("/tally/sessions/{session_id}/products", response_model=ProductListResponse)
def session_products(
    session_id: UUID,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1),
    db=Depends(get_db),
):
    page_size = min(page_size, settings.PRODUCTS_MAX_PAGE_SIZE)
    session = SessionService(db).get_session(session_id)
    products, total = CatalogService(db).products_with_counts(
        session,
        offset=(page - 1) * page_size,
        limit=page_size,
    )
    return ProductListResponse(
        rows=[
            ProductCountResponse(
                product_code=item.entry.product_code,
                barcode=item.entry.barcode,
                description=item.entry.description,
                system_balance=item.entry.system_balance,
                counted_store=item.counted_store,
                counted_warehouse=item.counted_warehouse,
                counted_total=item.counted_store + item.counted_warehouse,
            )
            for item in products
        ],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/tally/sessions/{session_id}/participants/{participant_id}/leave", response_model=ParticipantSummary)
def leave_session(session_id: UUID, participant_id: UUID, db=Depends(get_db)):
    return participant_summary(SessionService(db).leave_session(session_id, participant_id))
