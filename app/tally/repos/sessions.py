from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update

from app.tally.db.models import (
    CountSession,
    Movement,
    Participant,
    PARTICIPANT_STATUS_ACTIVE,
    SESSION_MODE_INDIVIDUAL,
    SESSION_MODE_MULTIPLAYER,
    SESSION_STATUS_CLOSING,
    SESSION_STATUS_FINALIZED,
    SESSION_STATUS_OPEN,
)


class SessionRepository:
    def __init__(self, db):
        self.db = db

    def get(self, session_id) -> CountSession | None:
        return self.db.get(CountSession, session_id)

    def get_locked_for_write(self, session_id) -> CountSession | None:
        # FOR SHARE: concurrent writers proceed together, a status change waits for them.
        query = (
            select(CountSession)
            .where(CountSession.id == session_id)
            .with_for_update(read=True)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(query).scalars().first()

    def get_by_access_code(self, access_code: str) -> CountSession | None:
        return (
            self.db.execute(select(CountSession).where(CountSession.access_code == access_code))
            .scalars()
            .first()
        )

    def access_code_exists(self, access_code: str) -> bool:
        return self.get_by_access_code(access_code) is not None

    def count_open_multiplayer(self, host_id: str) -> int:
        query = select(func.count()).select_from(CountSession).where(
            CountSession.host_id == host_id,
            CountSession.mode == SESSION_MODE_MULTIPLAYER,
            CountSession.status == SESSION_STATUS_OPEN,
        )
        return int(self.db.execute(query).scalar_one())

    def count_created_since(self, host_id: str, since: datetime) -> int:
        query = select(func.count()).select_from(CountSession).where(
            CountSession.host_id == host_id,
            CountSession.mode == SESSION_MODE_MULTIPLAYER,
            CountSession.created_at >= since,
        )
        return int(self.db.execute(query).scalar_one())

    def find_open_individual(self, user_id: str) -> CountSession | None:
        query = (
            select(CountSession)
            .where(
                CountSession.host_id == user_id,
                CountSession.mode == SESSION_MODE_INDIVIDUAL,
                CountSession.status == SESSION_STATUS_OPEN,
            )
            .order_by(CountSession.created_at.desc())
        )
        return self.db.execute(query).scalars().first()

    def list_for_host(self, host_id: str) -> list[tuple[CountSession, int, int]]:
        participant_counts = (
            select(Participant.session_id, func.count().label("participants"))
            .group_by(Participant.session_id)
            .subquery()
        )
        movement_counts = (
            select(Movement.session_id, func.count().label("movements"))
            .group_by(Movement.session_id)
            .subquery()
        )
        query = (
            select(
                CountSession,
                func.coalesce(participant_counts.c.participants, 0),
                func.coalesce(movement_counts.c.movements, 0),
            )
            .outerjoin(participant_counts, participant_counts.c.session_id == CountSession.id)
            .outerjoin(movement_counts, movement_counts.c.session_id == CountSession.id)
            .where(CountSession.host_id == host_id, CountSession.mode == SESSION_MODE_MULTIPLAYER)
            .order_by(CountSession.created_at.desc())
        )
        return [(row[0], int(row[1]), int(row[2])) for row in self.db.execute(query).all()]

    def claim_for_closing(self, session_id, host_id: str, now: datetime) -> bool:
        """Move an OPEN session to CLOSING. Only one concurrent caller gets True."""
        result = self.db.execute(
            update(CountSession)
            .where(
                CountSession.id == session_id,
                CountSession.host_id == host_id,
                CountSession.status == SESSION_STATUS_OPEN,
            )
            .values(status=SESSION_STATUS_CLOSING, closing_started_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_finalized(self, session_id, now: datetime) -> bool:
        result = self.db.execute(
            update(CountSession)
            .where(CountSession.id == session_id, CountSession.status == SESSION_STATUS_CLOSING)
            .values(status=SESSION_STATUS_FINALIZED, finalized_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_abandoned(self, created_before: datetime) -> list[CountSession]:
        query = select(CountSession).where(
            CountSession.status == SESSION_STATUS_OPEN,
            CountSession.created_at < created_before,
        )
        return self.db.execute(query).scalars().all()

    def list_finalized_before(self, finalized_before: datetime) -> list[CountSession]:
        query = select(CountSession).where(
            CountSession.status == SESSION_STATUS_FINALIZED,
            CountSession.finalized_at < finalized_before,
        )
        return self.db.execute(query).scalars().all()


class ParticipantRepository:
    def __init__(self, db):
        self.db = db

    def get(self, participant_id) -> Participant | None:
        return self.db.get(Participant, participant_id)

    def get_by_name(self, session_id, display_name: str) -> Participant | None:
        query = select(Participant).where(
            Participant.session_id == session_id,
            Participant.display_name == display_name,
        )
        return self.db.execute(query).scalars().first()

    def get_for_user(self, session_id, user_id: str) -> Participant | None:
        query = select(Participant).where(
            Participant.session_id == session_id,
            Participant.owning_user_id == user_id,
        )
        return self.db.execute(query).scalars().first()

    def count_active(self, session_id) -> int:
        query = select(func.count()).select_from(Participant).where(
            Participant.session_id == session_id,
            Participant.status == PARTICIPANT_STATUS_ACTIVE,
        )
        return int(self.db.execute(query).scalar_one())

    def list_for_session(self, session_id) -> list[Participant]:
        query = (
            select(Participant)
            .where(Participant.session_id == session_id)
            .order_by(Participant.joined_at, Participant.display_name)
        )
        return self.db.execute(query).scalars().all()

    def add(self, participant: Participant) -> Participant:
        self.db.add(participant)
        self.db.flush()
        return participant
