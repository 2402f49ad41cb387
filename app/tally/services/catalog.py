from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from app.tally.core.error_catalog import AppError, ErrorCatalog
from app.tally.db.models import CatalogEntry, CountSession, SESSION_STATUS_OPEN
from app.tally.repos.catalog import CatalogRepository
from app.tally.repos.movements import MovementRepository
from app.tally.repos.sessions import SessionRepository
from app.tally.services.aggregation import aggregate, barcode_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogRowInput:
    product_code: str
    barcode: str | None
    description: str
    system_balance: Decimal


@dataclass
class CatalogImportResult:
    inserted: int
    conflicts: list[str]


@dataclass(frozen=True)
class ProductCount:
    entry: CatalogEntry
    counted_store: Decimal
    counted_warehouse: Decimal


class CatalogService:
    def __init__(self, db):
        self.db = db
        self.sessions = SessionRepository(db)
        self.catalog = CatalogRepository(db)
        self.movements = MovementRepository(db)

    def import_rows(self, session: CountSession, rows: list[CatalogRowInput]) -> CatalogImportResult:
        if session.status != SESSION_STATUS_OPEN:
            raise AppError(ErrorCatalog.SESSION_CLOSED, details={"status": session.status})
        conflicts: list[str] = []
        unique: dict[str, CatalogRowInput] = {}
        for row in rows:
            if row.product_code in unique:
                conflicts.append(row.product_code)
                continue
            unique[row.product_code] = row
        existing = self.catalog.existing_product_codes(session.id, list(unique))
        entries = []
        for code, row in unique.items():
            if code in existing:
                conflicts.append(code)
                continue
            entries.append(
                CatalogEntry(
                    session_id=session.id,
                    product_code=row.product_code,
                    barcode=row.barcode,
                    description=row.description,
                    system_balance=row.system_balance,
                )
            )
        self.catalog.add_all(entries)
        self.db.commit()
        logger.info(
            "Catalog rows loaded",
            extra={"session_id": str(session.id), "inserted": len(entries), "conflicts": len(conflicts)},
        )
        return CatalogImportResult(inserted=len(entries), conflicts=conflicts)

    def clear(self, session: CountSession) -> int:
        """Delete the session catalog; refused once any movement exists."""
        locked = self.sessions.get_locked_for_write(session.id)
        if locked is None or locked.status != SESSION_STATUS_OPEN:
            self.db.rollback()
            raise AppError(ErrorCatalog.SESSION_CLOSED, details={"status": session.status})
        deleted = self.catalog.clear(session.id)
        if self.movements.has_movements(session.id):
            self.db.rollback()
            raise AppError(ErrorCatalog.CATALOG_LOCKED)
        self.db.commit()
        return deleted

    def products_with_counts(self, session: CountSession, *, offset: int, limit: int) -> tuple[list[ProductCount], int]:
        if session.status != SESSION_STATUS_OPEN:
            raise AppError(ErrorCatalog.SESSION_CLOSED, details={"status": session.status})
        entries, total = self.catalog.page_for_session(session.id, offset=offset, limit=limit)
        snapshot = aggregate(self.movements.balance_rows(session.id))
        counted: dict[str, tuple[Decimal, Decimal]] = {}
        for balance in snapshot.balances.values():
            key = barcode_key(balance.barcode)
            store, warehouse = counted.get(key, (Decimal("0"), Decimal("0")))
            counted[key] = (store + balance.store, warehouse + balance.warehouse)
        products = []
        for entry in entries:
            store, warehouse = counted.get(barcode_key(entry.barcode or entry.product_code), (Decimal("0"), Decimal("0")))
            products.append(ProductCount(entry=entry, counted_store=store, counted_warehouse=warehouse))
        return products, total
