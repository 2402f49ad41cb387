import logging
from dataclasses import dataclass
from datetime import datetime

from app.tally.core.context import RequestContext
from app.tally.db.models import AuditEvent
from app.tally.repos.audit import AuditRepository

logger = logging.getLogger(__name__)


@dataclass
class AuditEventPayload:
    actor: str
    action: str
    entity_type: str
    entity_id: str | None
    trace_id: str | None
    metadata: dict | None
    result: str = "success"


def payload_from_context(
    context: RequestContext,
    *,
    action: str,
    entity_type: str,
    entity_id: object | None,
    metadata: dict | None = None,
    result: str = "success",
) -> AuditEventPayload:
    metadata = dict(metadata or {})
    if context.company_id:
        metadata.setdefault("company_id", context.company_id)
    return AuditEventPayload(
        actor=context.user_id or "anonymous",
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        trace_id=context.trace_id or None,
        metadata=metadata,
        result=result,
    )


class AuditService:
    """Best-effort audit logging.

    Strategy: failures are logged and swallowed to avoid breaking request flows.
    Call it after the business transaction has committed.
    """

    def __init__(self, db):
        self.repo = AuditRepository(db)

    def record_event(self, payload: AuditEventPayload) -> None:
        try:
            event = AuditEvent(
                actor=payload.actor,
                action=payload.action,
                entity_type=payload.entity_type,
                entity_id=payload.entity_id,
                trace_id=payload.trace_id,
                event_metadata=payload.metadata,
                result=payload.result,
                created_at=datetime.utcnow(),
            )
            self.repo.create(event)
        except Exception:
            self.repo.db.rollback()
            logger.exception(
                "Failed to write audit event",
                extra={
                    "action": payload.action,
                    "trace_id": payload.trace_id,
                    "entity_id": payload.entity_id,
                },
            )
