from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.tally.core.config import settings

EARLIEST_TIMESTAMP_MS = 1609459200000  # 2021-01-01T00:00:00Z
MAX_FUTURE_SKEW = timedelta(days=1)


class MovementIn(BaseModel):
    client_id: UUID
    barcode: str = Field(min_length=1, max_length=100, pattern=r"^[0-9A-Za-z_-]+$")
    quantity: Decimal = Field(ge=Decimal("-10000"), le=Decimal("100000"), decimal_places=3)
    location_tag: Literal["STORE", "WAREHOUSE"] = "STORE"
    timestamp: int

    @field_validator("barcode", mode="before")
    @classmethod
    def _strip_barcode(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("timestamp")
    @classmethod
    def _timestamp_in_range(cls, value: int) -> int:
        latest = datetime.now(timezone.utc) + MAX_FUTURE_SKEW
        if value < EARLIEST_TIMESTAMP_MS or value > int(latest.timestamp() * 1000):
            raise ValueError("timestamp out of accepted range")
        return value


class MovementBatchRequest(BaseModel):
    participant_id: UUID
    movements: list[MovementIn] = Field(min_length=1)

    @field_validator("movements")
    @classmethod
    def _batch_size(cls, value: list[MovementIn]) -> list[MovementIn]:
        if len(value) > settings.SYNC_MAX_BATCH:
            raise ValueError(f"at most {settings.SYNC_MAX_BATCH} movements per batch")
        return value


class BalanceResponse(BaseModel):
    barcode: str
    store: Decimal
    warehouse: Decimal
    total: Decimal


class MovementBatchResponse(BaseModel):
    accepted_count: int
    duplicate_count: int
    updated_aggregates: list[BalanceResponse]


class AggregatesResponse(BaseModel):
    session_id: str
    status: str
    rows: list[BalanceResponse]
    total_movements: int


