from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SavedReportSummary(BaseModel):
    id: str
    session_id: str
    filename: str
    row_count: int
    created_at: datetime


class SavedReportDetail(SavedReportSummary):
    content: str


class SavedReportListResponse(BaseModel):
    rows: list[SavedReportSummary]
    total: int


class MaintenanceRunResponse(BaseModel):
    finalized_sessions: list[str]
    report_failures: list[str]
    purged_sessions: int
    purged_movements: int
