from __future__ import annotations

from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite

from app.tally.db.models import Movement

# Keeps each multi-row INSERT well under SQLite's bound-parameter limit.
_INSERT_CHUNK = 500


def _dialect_insert(dialect_name: str):
    if dialect_name == "postgresql":
        return postgresql.insert
    if dialect_name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"unsupported database dialect: {dialect_name}")


class MovementRepository:
    def __init__(self, db):
        self.db = db

    def existing_client_ids(self, session_id, client_ids: list[str]) -> set[str]:
        if not client_ids:
            return set()
        query = select(Movement.client_movement_id).where(
            Movement.session_id == session_id,
            Movement.client_movement_id.in_(client_ids),
        )
        return set(self.db.execute(query).scalars().all())

    def insert_ignoring_duplicates(self, rows: list[dict]) -> set[str]:
        """Insert ledger rows, skipping any (session, client id) already stored.

        Returns the client ids that were actually written by this call.
        """
        if not rows:
            return set()
        insert = _dialect_insert(self.db.get_bind().dialect.name)
        inserted: set[str] = set()
        for start in range(0, len(rows), _INSERT_CHUNK):
            chunk = rows[start : start + _INSERT_CHUNK]
            statement = (
                insert(Movement)
                .values(chunk)
                .on_conflict_do_nothing(index_elements=["session_id", "client_movement_id"])
                .returning(Movement.client_movement_id)
            )
            inserted.update(self.db.execute(statement).scalars().all())
        return inserted

    def balance_rows(self, session_id, barcodes: list[str] | None = None) -> list[tuple[str, str, Decimal]]:
        query = select(Movement.barcode, Movement.location_tag, Movement.quantity).where(
            Movement.session_id == session_id
        )
        if barcodes is not None:
            if not barcodes:
                return []
            query = query.where(Movement.barcode.in_(barcodes))
        return [(row[0], row[1], Decimal(str(row[2]))) for row in self.db.execute(query).all()]

    def count_for_session(self, session_id) -> int:
        query = select(func.count()).select_from(Movement).where(Movement.session_id == session_id)
        return int(self.db.execute(query).scalar_one())

    def has_movements(self, session_id) -> bool:
        query = select(Movement.id).where(Movement.session_id == session_id).limit(1)
        return self.db.execute(query).first() is not None

    def last_received_by_participant(self, session_id) -> dict:
        query = (
            select(Movement.participant_id, func.max(Movement.received_at), func.count())
            .where(Movement.session_id == session_id)
            .group_by(Movement.participant_id)
        )
        return {row[0]: (row[1], int(row[2])) for row in self.db.execute(query).all()}

    def delete_for_session(self, session_id) -> int:
        result = self.db.execute(
            delete(Movement)
            .where(Movement.session_id == session_id)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)
