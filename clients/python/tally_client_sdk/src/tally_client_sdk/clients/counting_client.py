from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..models import (
    AggregatesSnapshot,
    JoinResult,
    LocationTag,
    MovementPayload,
    ParticipantInfo,
    ProductPage,
    SessionStatusInfo,
    SyncResponse,
)
from .base import BaseClient


def new_movement(
    barcode: str,
    quantity: Decimal | int | str,
    location_tag: LocationTag | str = LocationTag.STORE,
    *,
    client_id: str | None = None,
    timestamp_ms: int | None = None,
) -> MovementPayload:
    """Build a movement with a fresh client id, ready to queue."""
    return MovementPayload(
        client_id=client_id or str(uuid.uuid4()),
        barcode=barcode.strip(),
        quantity=Decimal(str(quantity)),
        location_tag=LocationTag(location_tag),
        timestamp=timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
    )


@dataclass
class CountingClient(BaseClient):
    """Participant-side calls. None of them needs a bearer token."""

    def join(self, access_code: str, participant_name: str) -> JoinResult:
        data = self._request_object(
            "POST",
            "/tally/join",
            json_body={"access_code": access_code, "participant_name": participant_name},
            operation="join",
        )
        return JoinResult.model_validate(data)

    def push_movements(
        self,
        session_id: str,
        participant_id: str,
        movements: Iterable[MovementPayload],
    ) -> SyncResponse:
        body = {
            "participant_id": participant_id,
            "movements": [movement.model_dump(mode="json") for movement in movements],
        }
        # Safe to retry: the server deduplicates on client_id.
        data = self._request_object(
            "POST",
            f"/tally/sessions/{session_id}/movements",
            json_body=body,
            retry_mutation=True,
            operation="push_movements",
        )
        return SyncResponse.model_validate(data)

    def aggregates(self, session_id: str) -> AggregatesSnapshot:
        data = self._request_object("GET", f"/tally/sessions/{session_id}/aggregates", operation="aggregates")
        return AggregatesSnapshot.model_validate(data)

    def status(self, session_id: str) -> SessionStatusInfo:
        data = self._request_object("GET", f"/tally/sessions/{session_id}/status", operation="status")
        return SessionStatusInfo.model_validate(data)

    def products(self, session_id: str, page: int = 1, page_size: int = 50) -> ProductPage:
        data = self._request_object(
            "GET",
            f"/tally/sessions/{session_id}/products",
            params={"page": page, "page_size": page_size},
            operation="products",
        )
        return ProductPage.model_validate(data)

    def leave(self, session_id: str, participant_id: str) -> ParticipantInfo:
        data = self._request_object(
            "POST",
            f"/tally/sessions/{session_id}/participants/{participant_id}/leave",
            operation="leave",
        )
        return ParticipantInfo.model_validate(data)
