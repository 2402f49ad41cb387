from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from app.tally.core.config import settings
from app.tally.repos.movements import MovementRepository
from app.tally.repos.sessions import ParticipantRepository


@dataclass(frozen=True)
class ParticipantSyncState:
    participant_id: str
    display_name: str
    status: str
    last_sync_at: datetime | None
    movement_count: int
    recently_synced: bool


@dataclass(frozen=True)
class PendingSyncReport:
    participants: list[ParticipantSyncState]
    total_movements: int
    safe_to_close: bool
    recommendation: str


def build_pending_sync_report(db, session_id, *, now: datetime | None = None) -> PendingSyncReport:
    """Heuristic view for the host: who synced within the trailing window.

    It is guidance only; a participant may still hold unsent movements.
    """
    now = now or datetime.utcnow()
    window = timedelta(seconds=settings.PENDING_SYNC_WINDOW_SECONDS)
    last_sync = MovementRepository(db).last_received_by_participant(session_id)
    states = []
    for participant in ParticipantRepository(db).list_for_session(session_id):
        last_at, count = last_sync.get(participant.id, (None, 0))
        states.append(
            ParticipantSyncState(
                participant_id=str(participant.id),
                display_name=participant.display_name,
                status=participant.status,
                last_sync_at=last_at,
                movement_count=count,
                recently_synced=last_at is not None and now - last_at < window,
            )
        )
    total = sum(state.movement_count for state in states)
    pending = [state for state in states if state.recently_synced]
    safe_to_close = total == 0 or not pending
    if total == 0:
        recommendation = "No movements recorded yet."
    elif safe_to_close:
        recommendation = "All participants look synced. Safe to finalize."
    else:
        names = ", ".join(state.display_name for state in pending)
        recommendation = (
            f"Recent activity from {names}. Wait {settings.PENDING_SYNC_WINDOW_SECONDS}s "
            "and check again before finalizing."
        )
    return PendingSyncReport(
        participants=states,
        total_movements=total,
        safe_to_close=safe_to_close,
        recommendation=recommendation,
    )
