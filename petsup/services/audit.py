"""Append-only audit writes. Callers own the transaction."""
from typing import Optional
from sqlalchemy.orm import Session
from petsup.models.audit import AuditEvent


def record_event(
    db: Session,
    event_type: str,
    entity_type: str,
    entity_id,
    user_id: Optional[int] = None,
    payload: Optional[dict] = None
) -> AuditEvent:
    """Stage an audit event on the session; it is persisted with the caller's commit."""
    event = AuditEvent(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=str(entity_id),
        user_id=user_id,
        payload_json=payload or {}
    )
    db.add(event)
    return event
