"""Append-only audit log writer and reader."""
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from launchpad.models.audit_log import AuditLogEntry

logger = logging.getLogger(__name__)


def record_audit(
    db: Session,
    user_id: str,
    action: str,
    entity_id: str,
    details: Optional[dict[str, Any]] = None,
    entity_type: str = "startup",
) -> AuditLogEntry:
    """Insert and commit one audit entry. Database errors propagate to the caller."""
    entry = AuditLogEntry(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    db.add(entry)
    db.commit()
    logger.debug("Audit %s on %s %s by %s", action, entity_type, entity_id, user_id)
    return entry


def list_audit_entries(
    db: Session,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> list[AuditLogEntry]:
    query = db.query(AuditLogEntry)
    if entity_id:
        query = query.filter(AuditLogEntry.entity_id == entity_id)
    if action:
        query = query.filter(AuditLogEntry.action == action)
    return query.order_by(AuditLogEntry.created_at.desc()).limit(limit).all()


def try_record_audit(
    db: Session,
    user_id: str,
    action: str,
    entity_id: str,
    details: Optional[dict[str, Any]] = None,
    entity_type: str = "startup",
) -> bool:
    """Best-effort variant of ``record_audit``: failures are logged, never raised."""
    try:
        record_audit(db, user_id, action, entity_id, details=details, entity_type=entity_type)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Audit log write failed: %s on %s %s", action, entity_type, entity_id)
        return False
    return True
