from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from ..models import (
    CatalogImportResult,
    CatalogRow,
    FinalizeResult,
    HostSessionList,
    JoinResult,
    PendingSyncInfo,
    SavedReportInfo,
    SavedReportList,
    SessionInfo,
)
from .base import BaseClient


@dataclass
class HostClient(BaseClient):
    """Host-side calls; every request carries the bearer token."""

    def create_session(self, name: str | None = None) -> SessionInfo:
        data = self._request_object("POST", "/tally/sessions", json_body={"name": name}, operation="create_session")
        return SessionInfo.model_validate(data)

    def list_sessions(self) -> HostSessionList:
        return HostSessionList.model_validate(self._request_object("GET", "/tally/sessions", operation="list_sessions"))

    def get_session(self, session_id: str) -> SessionInfo:
        data = self._request_object("GET", f"/tally/sessions/{session_id}", operation="get_session")
        return SessionInfo.model_validate(data)

    def individual_session(self) -> JoinResult:
        data = self._request_object("POST", "/tally/sessions/individual", operation="individual_session")
        return JoinResult.model_validate(data)

    def import_catalog(
        self,
        session_id: str,
        rows: Iterable[CatalogRow | Mapping[str, Any]],
    ) -> CatalogImportResult:
        payload = [
            (row if isinstance(row, CatalogRow) else CatalogRow.model_validate(row)).model_dump(mode="json")
            for row in rows
        ]
        data = self._request_object(
            "POST",
            f"/tally/sessions/{session_id}/catalog",
            json_body={"rows": payload},
            operation="import_catalog",
        )
        return CatalogImportResult.model_validate(data)

    def clear_catalog(self, session_id: str) -> int:
        data = self._request_object("DELETE", f"/tally/sessions/{session_id}/catalog", operation="clear_catalog")
        return int(data.get("deleted", 0))

    def pending_sync(self, session_id: str) -> PendingSyncInfo:
        data = self._request_object("GET", f"/tally/sessions/{session_id}/pending", operation="pending_sync")
        return PendingSyncInfo.model_validate(data)

    def preview_report(self, session_id: str) -> dict[str, Any]:
        return self._request_object("GET", f"/tally/sessions/{session_id}/report", operation="preview_report")

    def finalize(self, session_id: str) -> FinalizeResult:
        data = self._request_object("POST", f"/tally/sessions/{session_id}/finalize", operation="finalize")
        return FinalizeResult.model_validate(data)

    def regenerate_report(self, session_id: str) -> FinalizeResult:
        data = self._request_object(
            "POST",
            f"/tally/sessions/{session_id}/report/regenerate",
            operation="regenerate_report",
        )
        return FinalizeResult.model_validate(data)

    def reset(self, session_id: str) -> int:
        data = self._request_object("POST", f"/tally/sessions/{session_id}/reset", operation="reset")
        return int(data.get("deleted_movements", 0))

    def list_reports(self) -> SavedReportList:
        return SavedReportList.model_validate(self._request_object("GET", "/tally/reports", operation="list_reports"))

    def get_report(self, report_id: str) -> SavedReportInfo:
        data = self._request_object("GET", f"/tally/reports/{report_id}", operation="get_report")
        return SavedReportInfo.model_validate(data)

    def download_report(self, report_id: str) -> bytes:
        response = self._request("GET", f"/tally/reports/{report_id}/download", raw=True, operation="download_report")
        return response.content
