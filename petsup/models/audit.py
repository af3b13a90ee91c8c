"""
Internal audit trail for commitment terms - NOT exposed through the API.

Terms are legal records; this table lets an operator reconstruct when a term
was signed, resynced, refused or found tampered.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON
from petsup.database import Base


class AuditEvent(Base):
    """
    Append-only audit event.

    Invariants:
    - Once written, never edited or deleted by the application
    """
    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    event_type = Column(String, nullable=False, index=True)  # e.g. "term_created"
    entity_type = Column(String, nullable=False)  # e.g. "AdoptionTerm"
    entity_id = Column(String, nullable=False, index=True)
    user_id = Column(Integer, nullable=True)  # Nullable for system events
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    payload_json = Column(JSON, nullable=True)


class AuditEventType:
    """Audit event types for the term subsystem."""
    TERM_CREATED = "term_created"
    TERM_RESYNCED = "term_resynced"
    TERM_REFUSED_DUPLICATE = "term_refused_duplicate"
    TERM_INTEGRITY_FAILED = "term_integrity_failed"
    TERM_EMAILED = "term_emailed"
