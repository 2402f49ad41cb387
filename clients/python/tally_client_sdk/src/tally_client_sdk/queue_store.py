from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_data_dir
from pydantic import ValidationError as PydanticValidationError

from .models import Balance, MovementPayload

logger = logging.getLogger(__name__)


@dataclass
class QueueState:
    session_id: str
    participant_id: str
    entries: list[MovementPayload] = field(default_factory=list)
    confirmed: dict[str, Balance] = field(default_factory=dict)
    closed: bool = False

    def to_json(self) -> dict:
        return {
            "session_id": self.session_id,
            "participant_id": self.participant_id,
            "entries": [entry.model_dump(mode="json") for entry in self.entries],
            "confirmed": {barcode: balance.model_dump(mode="json") for barcode, balance in self.confirmed.items()},
            "closed": self.closed,
        }


@dataclass
class QueueStore:
    """One JSON file per (session, participant) holding the unsent movements."""

    session_id: str
    participant_id: str
    base_dir: str | None = None
    app_name: str = "tally"

    @property
    def path(self) -> Path:
        base = Path(self.base_dir) if self.base_dir else Path(user_data_dir(self.app_name, "Tally")) / "queues"
        return base / f"{self.session_id}_{self.participant_id}.json"

    def load(self) -> QueueState:
        path = self.path
        empty = QueueState(session_id=self.session_id, participant_id=self.participant_id)
        if not path.exists():
            return empty
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return QueueState(
                session_id=self.session_id,
                participant_id=self.participant_id,
                entries=[MovementPayload.model_validate(item) for item in data.get("entries", [])],
                confirmed={
                    barcode: Balance.model_validate(item) for barcode, item in (data.get("confirmed") or {}).items()
                },
                closed=bool(data.get("closed", False)),
            )
        except (json.JSONDecodeError, PydanticValidationError, AttributeError, TypeError):
            corrupt = path.with_suffix(".corrupt")
            logger.error("Unreadable sync queue file moved aside", extra={"path": str(corrupt)})
            os.replace(path, corrupt)
            return empty

    def save(self, state: QueueState) -> None:
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(state.to_json(), handle)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)

    def clear(self) -> None:
        path = self.path
        if path.exists():
            path.unlink()
