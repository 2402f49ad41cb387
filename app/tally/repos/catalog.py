from __future__ import annotations

from sqlalchemy import delete, func, select

from app.tally.db.models import CatalogEntry


class CatalogRepository:
    def __init__(self, db):
        self.db = db

    def list_for_session(self, session_id) -> list[CatalogEntry]:
        query = (
            select(CatalogEntry)
            .where(CatalogEntry.session_id == session_id)
            .order_by(CatalogEntry.product_code)
        )
        return self.db.execute(query).scalars().all()

    def page_for_session(self, session_id, *, offset: int, limit: int) -> tuple[list[CatalogEntry], int]:
        base = select(CatalogEntry).where(CatalogEntry.session_id == session_id)
        total = self.db.execute(select(func.count()).select_from(base.subquery())).scalar_one()
        rows = (
            self.db.execute(base.order_by(CatalogEntry.description, CatalogEntry.product_code).offset(offset).limit(limit))
            .scalars()
            .all()
        )
        return rows, int(total)

    def existing_product_codes(self, session_id, product_codes: list[str]) -> set[str]:
        if not product_codes:
            return set()
        query = select(CatalogEntry.product_code).where(
            CatalogEntry.session_id == session_id,
            CatalogEntry.product_code.in_(product_codes),
        )
        return set(self.db.execute(query).scalars().all())

    def add_all(self, entries: list[CatalogEntry]) -> None:
        self.db.add_all(entries)
        self.db.flush()

    def clear(self, session_id) -> int:
        result = self.db.execute(
            delete(CatalogEntry)
            .where(CatalogEntry.session_id == session_id)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)
