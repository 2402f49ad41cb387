from __future__ import annotations

from sqlalchemy import select

from app.tally.db.models import SavedReport


class ReportRepository:
    def __init__(self, db):
        self.db = db

    def get(self, report_id) -> SavedReport | None:
        return self.db.get(SavedReport, report_id)

    def get_for_session(self, session_id) -> SavedReport | None:
        return self.db.execute(select(SavedReport).where(SavedReport.session_id == session_id)).scalars().first()

    def list_for_owner(self, owner_id: str) -> list[SavedReport]:
        query = select(SavedReport).where(SavedReport.owner_id == owner_id).order_by(SavedReport.created_at.desc())
        return self.db.execute(query).scalars().all()

    def add(self, report: SavedReport) -> SavedReport:
        self.db.add(report)
        self.db.flush()
        return report
