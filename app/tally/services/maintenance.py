from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from app.tally.core.config import settings
from app.tally.core.error_catalog import AppError
from app.tally.core.logging import log_json
from app.tally.repos.movements import MovementRepository
from app.tally.repos.reports import ReportRepository
from app.tally.repos.sessions import SessionRepository
from app.tally.services.sessions import SessionService

logger = logging.getLogger(__name__)


@dataclass
class MaintenanceResult:
    finalized_sessions: list[str] = field(default_factory=list)
    report_failures: list[str] = field(default_factory=list)
    purged_sessions: int = 0
    purged_movements: int = 0


class MaintenanceService:
    """Scheduled housekeeping: close abandoned sessions, purge old ledger rows."""

    def __init__(self, db):
        self.db = db
        self.sessions = SessionRepository(db)
        self.movements = MovementRepository(db)
        self.reports = ReportRepository(db)
        self.lifecycle = SessionService(db)

    def run(self, now: datetime | None = None) -> MaintenanceResult:
        now = now or datetime.utcnow()
        result = MaintenanceResult()
        self._finalize_abandoned(now, result)
        self._purge_expired(now, result)
        log_json(
            logger,
            {
                "event": "maintenance_run",
                "finalized_sessions": len(result.finalized_sessions),
                "report_failures": len(result.report_failures),
                "purged_sessions": result.purged_sessions,
                "purged_movements": result.purged_movements,
            },
        )
        return result

    def _finalize_abandoned(self, now: datetime, result: MaintenanceResult) -> None:
        cutoff = now - timedelta(days=settings.ABANDONED_SESSION_DAYS)
        for session in self.sessions.list_abandoned(cutoff):
            session_id, host_id = session.id, session.host_id
            try:
                self.lifecycle.close_for_writes(session_id, host_id, now)
            except AppError:
                # Finalized by its host since the listing.
                continue
            result.finalized_sessions.append(str(session_id))
            try:
                self.lifecycle.build_and_store_report(self.sessions.get(session_id))
            except Exception:
                self.db.rollback()
                logger.exception("Report generation failed for abandoned session", extra={"session_id": str(session_id)})
                result.report_failures.append(str(session_id))

    def _purge_expired(self, now: datetime, result: MaintenanceResult) -> None:
        cutoff = now - timedelta(days=settings.RETENTION_DAYS)
        for session in self.sessions.list_finalized_before(cutoff):
            if self.reports.get_for_session(session.id) is None:
                logger.warning("Skipping purge of session without report", extra={"session_id": str(session.id)})
                continue
            deleted = self.movements.delete_for_session(session.id)
            if deleted:
                result.purged_sessions += 1
                result.purged_movements += deleted
        self.db.commit()
