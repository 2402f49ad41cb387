from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SessionStatus(str, Enum):
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    FINALIZED = "FINALIZED"


class LocationTag(str, Enum):
    STORE = "STORE"
    WAREHOUSE = "WAREHOUSE"


class SessionInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    access_code: str
    mode: str
    status: SessionStatus
    created_at: datetime | None = None
    closing_started_at: datetime | None = None
    finalized_at: datetime | None = None


class HostSessionInfo(SessionInfo):
    participant_count: int = 0
    movement_count: int = 0


class HostSessionList(BaseModel):
    model_config = ConfigDict(extra="allow")

    rows: list[HostSessionInfo]
    total: int


class ParticipantInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    display_name: str
    status: str
    joined_at: datetime | None = None
    left_at: datetime | None = None


class JoinResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    session: SessionInfo
    participant: ParticipantInfo


class MovementPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    client_id: str
    barcode: str
    quantity: Decimal
    location_tag: LocationTag = LocationTag.STORE
    timestamp: int


class Balance(BaseModel):
    model_config = ConfigDict(extra="allow")

    barcode: str
    store: Decimal = Decimal("0")
    warehouse: Decimal = Decimal("0")
    total: Decimal = Decimal("0")


class SyncResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    accepted_count: int
    duplicate_count: int
    updated_aggregates: list[Balance] = Field(default_factory=list)


class AggregatesSnapshot(BaseModel):
    model_config = ConfigDict(extra="allow")

    session_id: str
    status: SessionStatus
    rows: list[Balance] = Field(default_factory=list)
    total_movements: int = 0


class SessionStatusInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    session_id: str
    status: SessionStatus


class CatalogRow(BaseModel):
    model_config = ConfigDict(extra="allow")

    product_code: str
    barcode: str | None = None
    description: str = ""
    system_balance: Decimal = Decimal("0")


class CatalogImportResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    session_id: str
    inserted: int
    conflicts: list[str] = Field(default_factory=list)


class ProductCount(BaseModel):
    model_config = ConfigDict(extra="allow")

    product_code: str
    barcode: str | None = None
    description: str
    system_balance: Decimal
    counted_store: Decimal
    counted_warehouse: Decimal
    counted_total: Decimal


class ProductPage(BaseModel):
    model_config = ConfigDict(extra="allow")

    rows: list[ProductCount]
    total: int
    page: int
    page_size: int


class ParticipantSyncState(BaseModel):
    model_config = ConfigDict(extra="allow")

    participant_id: str
    display_name: str
    status: str
    last_sync_at: datetime | None = None
    movement_count: int = 0
    recently_synced: bool = False


class PendingSyncInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    session_id: str
    participants: list[ParticipantSyncState] = Field(default_factory=list)
    total_movements: int
    safe_to_close: bool
    recommendation: str
    window_seconds: int | None = None


class FinalizeResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    report_id: str
    session_id: str
    status: SessionStatus


class SavedReportInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    session_id: str
    filename: str
    row_count: int
    created_at: datetime | None = None
    content: str | None = None


class SavedReportList(BaseModel):
    model_config = ConfigDict(extra="allow")

    rows: list[SavedReportInfo]
    total: int
