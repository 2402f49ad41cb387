from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from app.tally.core.error_catalog import AppError, ErrorCatalog
from app.tally.core.metrics import metrics
from app.tally.db.models import SESSION_STATUS_OPEN
from app.tally.repos.movements import MovementRepository
from app.tally.repos.sessions import ParticipantRepository, SessionRepository
from app.tally.services.aggregation import AggregateSnapshot, aggregate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovementDraft:
    client_id: str
    barcode: str
    quantity: Decimal
    location_tag: str
    timestamp_ms: int


@dataclass
class SyncResult:
    accepted_count: int
    duplicate_count: int
    aggregates: AggregateSnapshot


def counted_at_from_ms(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).replace(tzinfo=None)


class MovementLedgerService:
    """Append-only movement ledger with at-least-once, idempotent writes."""

    def __init__(self, db):
        self.db = db
        self.sessions = SessionRepository(db)
        self.participants = ParticipantRepository(db)
        self.movements = MovementRepository(db)

    def _require_open(self, session_id):
        session = self.sessions.get_locked_for_write(session_id)
        if session is None:
            self.db.rollback()
            raise AppError(ErrorCatalog.SESSION_NOT_FOUND)
        if session.status != SESSION_STATUS_OPEN:
            self.db.rollback()
            raise AppError(ErrorCatalog.SESSION_CLOSED, details={"status": session.status})
        return session

    def record_movements(self, session_id, participant_id, drafts: list[MovementDraft]) -> SyncResult:
        session = self._require_open(session_id)
        participant = self.participants.get(participant_id)
        if participant is None or participant.session_id != session.id:
            self.db.rollback()
            raise AppError(ErrorCatalog.PARTICIPANT_NOT_IN_SESSION)

        unique: dict[str, MovementDraft] = {}
        for draft in drafts:
            unique.setdefault(draft.client_id, draft)
        existing = self.movements.existing_client_ids(session.id, list(unique))
        received_at = datetime.utcnow()
        rows = [
            {
                "id": uuid.uuid4(),
                "session_id": session.id,
                "participant_id": participant.id,
                "client_movement_id": draft.client_id,
                "barcode": draft.barcode,
                "quantity": draft.quantity,
                "location_tag": draft.location_tag,
                "counted_at": counted_at_from_ms(draft.timestamp_ms),
                "received_at": received_at,
            }
            for client_id, draft in unique.items()
            if client_id not in existing
        ]
        inserted = self.movements.insert_ignoring_duplicates(rows)

        # Re-read after the insert: on SQLite the write lock is only held from here on.
        self._require_open(session.id)
        self.db.commit()

        accepted = len(inserted)
        duplicates = len(drafts) - accepted
        metrics.record_movements(accepted=accepted, duplicates=duplicates)
        if duplicates:
            logger.info(
                "Duplicate movements skipped",
                extra={"session_id": str(session.id), "duplicates": duplicates},
            )
        barcodes = sorted({draft.barcode for draft in drafts})
        return SyncResult(
            accepted_count=accepted,
            duplicate_count=duplicates,
            aggregates=aggregate(self.movements.balance_rows(session.id, barcodes)),
        )

    def session_aggregates(self, session_id) -> AggregateSnapshot:
        session = self.sessions.get(session_id)
        if session is None:
            raise AppError(ErrorCatalog.SESSION_NOT_FOUND)
        if session.status != SESSION_STATUS_OPEN:
            raise AppError(ErrorCatalog.SESSION_CLOSED, details={"status": session.status})
        return aggregate(self.movements.balance_rows(session.id))
