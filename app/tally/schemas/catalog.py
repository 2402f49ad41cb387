from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class CatalogRowRequest(BaseModel):
    product_code: str = Field(min_length=1, max_length=100)
    barcode: str | None = Field(default=None, max_length=100)
    description: str = Field(default="", max_length=255)
    system_balance: Decimal = Decimal("0")

    @field_validator("product_code", "barcode", "description", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("barcode")
    @classmethod
    def _blank_barcode(cls, value: str | None) -> str | None:
        return value or None


class CatalogImportRequest(BaseModel):
    rows: list[CatalogRowRequest] = Field(min_length=1, max_length=50000)


class CatalogImportResponse(BaseModel):
    session_id: str
    inserted: int
    conflicts: list[str]


class CatalogClearResponse(BaseModel):
    session_id: str
    deleted: int


class ProductCountResponse(BaseModel):
    product_code: str
    barcode: str | None
    description: str
    system_balance: Decimal
    counted_store: Decimal
    counted_warehouse: Decimal
    counted_total: Decimal


class ProductListResponse(BaseModel):
    rows: list[ProductCountResponse]
    total: int
    page: int
    page_size: int
