from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from sqlalchemy.exc import IntegrityError

from app.tally.core.config import settings
from app.tally.core.error_catalog import AppError, ErrorCatalog
from app.tally.core.metrics import metrics
from app.tally.db.models import (
    CountSession,
    Participant,
    PARTICIPANT_STATUS_ACTIVE,
    PARTICIPANT_STATUS_FINISHED,
    SavedReport,
    SESSION_MODE_INDIVIDUAL,
    SESSION_MODE_MULTIPLAYER,
    SESSION_STATUS_FINALIZED,
    SESSION_STATUS_OPEN,
)
from app.tally.repos.catalog import CatalogRepository
from app.tally.repos.movements import MovementRepository
from app.tally.repos.reports import ReportRepository
from app.tally.repos.sessions import ParticipantRepository, SessionRepository
from app.tally.services.aggregation import aggregate
from app.tally.services.reconciliation import (
    ReconciliationRow,
    ReconciliationSummary,
    reconcile,
    render_report,
    report_filename,
    summarize,
)

logger = logging.getLogger(__name__)

ACCESS_CODE_MAX_LENGTH = 10
ACCESS_CODE_MIN_LENGTH = 3
PARTICIPANT_NAME_MAX_LENGTH = 30
PARTICIPANT_NAME_MIN_LENGTH = 2
SESSION_NAME_MAX_LENGTH = 120
INDIVIDUAL_PARTICIPANT_NAME = "Me"


def utcnow() -> datetime:
    return datetime.utcnow()


def default_session_name(today: date) -> str:
    return f"Inventory {today.isoformat()}"


def generate_access_code(length: int | None = None, alphabet: str | None = None) -> str:
    length = length or settings.ACCESS_CODE_LENGTH
    alphabet = alphabet or settings.ACCESS_CODE_ALPHABET
    return "".join(secrets.choice(alphabet) for _ in range(length))


def normalize_access_code(raw: str) -> str:
    return (raw or "").strip().upper()[:ACCESS_CODE_MAX_LENGTH]


def normalize_participant_name(raw: str) -> str:
    return (raw or "").strip()[:PARTICIPANT_NAME_MAX_LENGTH]


@dataclass
class SessionReportPreview:
    session: CountSession
    rows: list[ReconciliationRow]
    summary: ReconciliationSummary
    participant_count: int
    duration_seconds: int


class SessionService:
    def __init__(self, db):
        self.db = db
        self.sessions = SessionRepository(db)
        self.participants = ParticipantRepository(db)
        self.catalog = CatalogRepository(db)
        self.movements = MovementRepository(db)
        self.reports = ReportRepository(db)

    # -- lookups -----------------------------------------------------------

    def get_session(self, session_id) -> CountSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise AppError(ErrorCatalog.SESSION_NOT_FOUND)
        return session

    def get_host_session(self, session_id, host_id: str) -> CountSession:
        session = self.get_session(session_id)
        if session.host_id != host_id:
            raise AppError(ErrorCatalog.NOT_SESSION_HOST)
        return session

    def get_open_session(self, session_id) -> CountSession:
        session = self.get_session(session_id)
        if session.status != SESSION_STATUS_OPEN:
            raise AppError(ErrorCatalog.SESSION_CLOSED, details={"status": session.status})
        return session

    def list_host_sessions(self, host_id: str) -> list[tuple[CountSession, int, int]]:
        return self.sessions.list_for_host(host_id)

    # -- creation ----------------------------------------------------------

    def create_session(self, *, host_id: str, company_id: str | None, name: str | None) -> CountSession:
        now = utcnow()
        open_count = self.sessions.count_open_multiplayer(host_id)
        if open_count >= settings.MAX_OPEN_SESSIONS_PER_HOST:
            raise AppError(
                ErrorCatalog.SESSION_QUOTA_EXCEEDED,
                details={"reason": "open_sessions", "limit": settings.MAX_OPEN_SESSIONS_PER_HOST},
            )
        created_today = self.sessions.count_created_since(host_id, now - timedelta(hours=24))
        if created_today >= settings.MAX_SESSIONS_PER_DAY:
            raise AppError(
                ErrorCatalog.SESSION_QUOTA_EXCEEDED,
                details={"reason": "daily_sessions", "limit": settings.MAX_SESSIONS_PER_DAY},
            )
        session_name = (name or "").strip()[:SESSION_NAME_MAX_LENGTH] or default_session_name(now.date())
        session = self._insert_with_unique_code(
            lambda code: CountSession(
                name=session_name,
                access_code=code,
                host_id=host_id,
                company_id=company_id,
                mode=SESSION_MODE_MULTIPLAYER,
                status=SESSION_STATUS_OPEN,
                created_at=now,
            )
        )
        logger.info(
            "Count session created",
            extra={"session_id": str(session.id), "host_id": host_id, "access_code": session.access_code},
        )
        return session

    def _insert_with_unique_code(self, build: Callable[[str], CountSession]) -> CountSession:
        for attempt in range(1, settings.ACCESS_CODE_MAX_ATTEMPTS + 1):
            code = generate_access_code()
            if self.sessions.access_code_exists(code):
                logger.info("Access code collision", extra={"attempt": attempt})
                continue
            session = build(code)
            self.db.add(session)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info("Access code collision on insert", extra={"attempt": attempt})
                continue
            self.db.refresh(session)
            return session
        logger.error("Access code space exhausted", extra={"attempts": settings.ACCESS_CODE_MAX_ATTEMPTS})
        raise AppError(ErrorCatalog.INTERNAL_ERROR)

    def ensure_individual_session(self, *, user_id: str, company_id: str | None) -> tuple[CountSession, Participant]:
        session = self.sessions.find_open_individual(user_id)
        if session is None:
            now = utcnow()
            session = self._insert_with_unique_code(
                lambda code: CountSession(
                    name=f"Individual {now.date().isoformat()}",
                    access_code=code,
                    host_id=user_id,
                    company_id=company_id,
                    mode=SESSION_MODE_INDIVIDUAL,
                    status=SESSION_STATUS_OPEN,
                    created_at=now,
                )
            )
        participant = self.participants.get_for_user(session.id, user_id)
        if participant is None:
            participant = Participant(
                session_id=session.id,
                display_name=INDIVIDUAL_PARTICIPANT_NAME,
                owning_user_id=user_id,
                status=PARTICIPANT_STATUS_ACTIVE,
                joined_at=utcnow(),
            )
            try:
                self.participants.add(participant)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                participant = self.participants.get_for_user(session.id, user_id)
                if participant is None:
                    raise
        return session, participant

    # -- participation -----------------------------------------------------

    def join_session(self, *, access_code: str, participant_name: str) -> tuple[CountSession, Participant]:
        code = normalize_access_code(access_code)
        name = normalize_participant_name(participant_name)
        if len(code) < ACCESS_CODE_MIN_LENGTH or len(name) < PARTICIPANT_NAME_MIN_LENGTH:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={
                    "message": (
                        f"access_code needs at least {ACCESS_CODE_MIN_LENGTH} characters and "
                        f"participant_name at least {PARTICIPANT_NAME_MIN_LENGTH}"
                    )
                },
            )
        session = self.sessions.get_by_access_code(code)
        if session is None or session.status != SESSION_STATUS_OPEN or session.mode != SESSION_MODE_MULTIPLAYER:
            raise AppError(ErrorCatalog.SESSION_NOT_FOUND)

        participant = self.participants.get_by_name(session.id, name)
        if participant is not None:
            if participant.status != PARTICIPANT_STATUS_ACTIVE:
                participant.status = PARTICIPANT_STATUS_ACTIVE
                participant.left_at = None
                self.db.commit()
            return session, participant

        if self.participants.count_active(session.id) >= settings.MAX_PARTICIPANTS_PER_SESSION:
            raise AppError(
                ErrorCatalog.SESSION_FULL,
                details={"limit": settings.MAX_PARTICIPANTS_PER_SESSION},
            )
        participant = Participant(
            session_id=session.id,
            display_name=name,
            status=PARTICIPANT_STATUS_ACTIVE,
            joined_at=utcnow(),
        )
        try:
            self.participants.add(participant)
            self.db.commit()
        except IntegrityError:
            # Same name joined concurrently; both callers get that participant.
            self.db.rollback()
            participant = self.participants.get_by_name(session.id, name)
            if participant is None:
                raise
        return session, participant

    def require_participant(self, session: CountSession, participant_id) -> Participant:
        participant = self.participants.get(participant_id)
        if participant is None or participant.session_id != session.id:
            raise AppError(ErrorCatalog.PARTICIPANT_NOT_IN_SESSION)
        return participant

    def leave_session(self, session_id, participant_id) -> Participant:
        session = self.get_session(session_id)
        participant = self.require_participant(session, participant_id)
        if participant.status != PARTICIPANT_STATUS_FINISHED:
            participant.status = PARTICIPANT_STATUS_FINISHED
            participant.left_at = utcnow()
            self.db.commit()
        return participant

    # -- lifecycle ---------------------------------------------------------

    def finalize_session(self, session_id, host_id: str) -> SavedReport:
        """Close the session for writes, then build and store its report.

        The status flips to FINALIZED before any aggregate is read, so the
        report covers exactly the movements committed before the claim.
        Claim and flip share one transaction: a failure in between rolls the
        session back to OPEN and finalize can simply be retried.
        """
        self.close_for_writes(session_id, host_id, utcnow())
        session = self.get_session(session_id)
        logger.info("Count session finalized", extra={"session_id": str(session_id), "host_id": host_id})
        report = self._store_report_or_fail(session)
        metrics.record_finalization("finalized")
        return report

    def close_for_writes(self, session_id, host_id: str, now: datetime) -> None:
        """OPEN -> CLOSING -> FINALIZED, committed once."""
        if not self.sessions.claim_for_closing(session_id, host_id, now):
            self.db.rollback()
            session = self.get_host_session(session_id, host_id)
            metrics.record_finalization("rejected")
            raise AppError(ErrorCatalog.ALREADY_FINALIZED, details={"status": session.status})
        try:
            self.sessions.mark_finalized(session_id, now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Finalize rolled back", extra={"session_id": str(session_id)})
            raise

    def _store_report_or_fail(self, session: CountSession) -> SavedReport:
        try:
            report = self.build_and_store_report(session)
        except Exception as exc:
            self.db.rollback()
            logger.exception(
                "Report generation failed for finalized session",
                extra={"session_id": str(session.id)},
            )
            metrics.record_finalization("report_failed")
            raise AppError(ErrorCatalog.INTERNAL_ERROR) from exc
        return report

    def build_and_store_report(self, session: CountSession) -> SavedReport:
        catalog = self.catalog.list_for_session(session.id)
        snapshot = aggregate(self.movements.balance_rows(session.id))
        rows = reconcile(catalog, snapshot)
        report = SavedReport(
            session_id=session.id,
            owner_id=session.host_id,
            company_id=session.company_id,
            filename=report_filename(session.name),
            content=render_report(rows),
            row_count=len(rows),
            created_at=utcnow(),
        )
        self.reports.add(report)
        self.db.commit()
        self.db.refresh(report)
        return report

    def regenerate_report(self, session_id, host_id: str) -> SavedReport:
        session = self.get_host_session(session_id, host_id)
        if session.status != SESSION_STATUS_FINALIZED:
            raise AppError(ErrorCatalog.SESSION_NOT_FINALIZED, details={"status": session.status})
        if self.reports.get_for_session(session.id) is not None:
            raise AppError(ErrorCatalog.REPORT_ALREADY_EXISTS)
        try:
            return self._store_report_or_fail(session)
        except AppError:
            if self.reports.get_for_session(session.id) is not None:
                raise AppError(ErrorCatalog.REPORT_ALREADY_EXISTS) from None
            raise

    def reset_session(self, session_id, host_id: str) -> int:
        session = self.get_host_session(session_id, host_id)
        locked = self.sessions.get_locked_for_write(session.id)
        if locked is None or locked.status != SESSION_STATUS_OPEN:
            self.db.rollback()
            raise AppError(ErrorCatalog.SESSION_CLOSED, details={"status": session.status})
        deleted = self.movements.delete_for_session(session.id)
        self.db.commit()
        logger.info("Count session reset", extra={"session_id": str(session.id), "deleted_movements": deleted})
        return deleted

    def preview_report(self, session_id, host_id: str) -> SessionReportPreview:
        session = self.get_host_session(session_id, host_id)
        catalog = self.catalog.list_for_session(session.id)
        snapshot = aggregate(self.movements.balance_rows(session.id))
        rows = reconcile(catalog, snapshot)
        end = session.finalized_at or utcnow()
        return SessionReportPreview(
            session=session,
            rows=rows,
            summary=summarize(rows),
            participant_count=len(self.participants.list_for_session(session.id)),
            duration_seconds=max(0, int((end - session.created_at).total_seconds())),
        )
