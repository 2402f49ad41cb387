from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class SessionCreateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=120)


class SessionSummary(BaseModel):
    id: str
    name: str
    access_code: str
    mode: Literal["INDIVIDUAL", "MULTIPLAYER"]
    status: Literal["OPEN", "CLOSING", "FINALIZED"]
    created_at: datetime
    closing_started_at: datetime | None = None
    finalized_at: datetime | None = None


class HostSessionSummary(SessionSummary):
    participant_count: int
    movement_count: int


class HostSessionListResponse(BaseModel):
    rows: list[HostSessionSummary]
    total: int


class ParticipantSummary(BaseModel):
    id: str
    display_name: str
    status: Literal["ACTIVE", "FINISHED"]
    joined_at: datetime
    left_at: datetime | None = None


class JoinSessionRequest(BaseModel):
    access_code: str = Field(max_length=64)
    participant_name: str = Field(max_length=64)


class JoinSessionResponse(BaseModel):
    session: SessionSummary
    participant: ParticipantSummary


class SessionStatusResponse(BaseModel):
    session_id: str
    status: Literal["OPEN", "CLOSING", "FINALIZED"]


class FinalizeResponse(BaseModel):
    report_id: str
    session_id: str
    status: Literal["OPEN", "CLOSING", "FINALIZED"]


class ResetResponse(BaseModel):
    session_id: str
    deleted_movements: int


class ParticipantSyncStateResponse(BaseModel):
    participant_id: str
    display_name: str
    status: str
    last_sync_at: datetime | None
    movement_count: int
    recently_synced: bool


class PendingSyncResponse(BaseModel):
    session_id: str
    participants: list[ParticipantSyncStateResponse]
    total_movements: int
    safe_to_close: bool
    recommendation: str
    window_seconds: int


class ReportRowResponse(BaseModel):
    barcode: str
    product_code: str
    description: str
    system_balance: Decimal
    counted_total: Decimal
    counted_store: Decimal
    counted_warehouse: Decimal
    difference: Decimal
    registered: bool


class ReportSummaryResponse(BaseModel):
    total_products: int
    counted_products: int
    missing_products: int
    unregistered_items: int
    rows_with_difference: int
    participant_count: int
    duration_seconds: int


class ReportPreviewResponse(BaseModel):
    session: SessionSummary
    summary: ReportSummaryResponse
    rows: list[ReportRowResponse]
