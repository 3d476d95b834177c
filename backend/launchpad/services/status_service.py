"""Moderation status transitions for startups.

A transition is validated (status value, authorization, optional version),
committed, and only then followed by two best-effort side effects: an audit
entry and, for approvals, an admin notification. Neither side effect can
undo or fail a committed transition.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from launchpad.auth import Principal
from launchpad.errors import DatastoreUnavailable, Forbidden, InvalidStatus, NotFound, VersionConflict
from launchpad.models.startup import ModerationStatus, Startup, VALID_STATUSES
from launchpad.services import audit_service
from launchpad.services.notification_service import (
    LogNotifier,
    Notification,
    deliver,
    startup_approved_notification,
)

logger = logging.getLogger(__name__)


class TransitionMode(str, enum.Enum):
    owner = "owner"
    admin = "admin"


@dataclass
class StatusChange:
    record: Startup
    notifications: list[Notification] = field(default_factory=list)


def get_startup(db: Session, startup_id: str) -> Startup:
    """Fetch a startup by id or raise ``NotFound``."""
    try:
        startup = db.query(Startup).filter(Startup.id == startup_id).first()
    except SQLAlchemyError as exc:
        logger.exception("Failed to load startup %s", startup_id)
        raise DatastoreUnavailable() from exc
    if not startup:
        raise NotFound()
    return startup


def _check_authorization(startup: Startup, principal: Principal, mode: TransitionMode) -> None:
    if mode == TransitionMode.owner:
        if startup.owner_id != principal.user_id:
            raise Forbidden("You can only update your own startups")
    elif not principal.is_admin:
        raise Forbidden("Admin access required")


def set_status(
    db: Session,
    startup_id: str,
    new_status: str,
    principal: Principal,
    mode: TransitionMode = TransitionMode.admin,
    notifier=None,
    expected_version: Optional[int] = None,
) -> StatusChange:
    """Move a startup to ``new_status`` on behalf of ``principal``."""
    if new_status not in VALID_STATUSES:
        raise InvalidStatus(new_status)
    new_status = ModerationStatus(new_status).value

    startup = get_startup(db, startup_id)
    _check_authorization(startup, principal, TransitionMode(mode))

    if expected_version is not None and startup.version != expected_version:
        raise VersionConflict(expected=expected_version, actual=startup.version)

    previous_status = startup.status
    startup.status = new_status
    startup.updated_at = datetime.now(timezone.utc)
    startup.version += 1
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to set status of startup %s to %s", startup_id, new_status)
        raise DatastoreUnavailable("Error updating status") from exc
    db.refresh(startup)

    audit_service.try_record_audit(
        db,
        user_id=principal.user_id,
        action=f"set_status_{new_status}",
        entity_id=startup.id,
        details={"name": startup.name, "previous_status": previous_status, "mode": TransitionMode(mode).value},
    )

    notifications: list[Notification] = []
    if new_status == ModerationStatus.approved.value:
        notification = startup_approved_notification(startup.id, startup.name)
        notifications.append(deliver(notifier or LogNotifier(), notification))

    logger.info(
        "Startup %s status %s -> %s by %s (%s)",
        startup.id, previous_status, new_status, principal.user_id, TransitionMode(mode).value,
    )
    return StatusChange(record=startup, notifications=notifications)
