"""Startup creation, owner edits and lookups."""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from launchpad.auth import Principal
from launchpad.errors import (
    DatastoreUnavailable,
    Forbidden,
    InvalidStatus,
    NotFound,
    SlugConflict,
    VersionConflict,
)
from launchpad.models.startup import ModerationStatus, Startup, VALID_STATUSES
from launchpad.services import audit_service
from launchpad.services.notification_service import LogNotifier, deliver, startup_created_notification
from launchpad.services.slug_service import generate_unique_slug
from launchpad.services.status_service import get_startup

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "tagline", "description", "website_url")
CREATE_ATTEMPTS = 2


def create_startup(
    db: Session,
    owner: Principal,
    name: str,
    tagline: Optional[str] = None,
    description: Optional[str] = None,
    website_url: Optional[str] = None,
    notifier=None,
) -> Startup:
    """Create a startup owned by ``owner``. New records always start ``pending``.

    Losing the slug to a concurrent insert triggers one fresh slug search;
    losing it twice raises ``SlugConflict``.
    """
    for attempt in range(1, CREATE_ATTEMPTS + 1):
        slug = generate_unique_slug(db, name)
        startup = Startup(
            name=name,
            slug=slug,
            tagline=tagline,
            description=description,
            website_url=website_url,
            status=ModerationStatus.pending.value,
            owner_id=owner.user_id,
            version=1,
        )
        db.add(startup)
        try:
            db.commit()
            break
        except IntegrityError as exc:
            # Lost a race for the slug between the availability check and the insert
            db.rollback()
            logger.warning("Slug '%s' was claimed concurrently for '%s' (attempt %d)", slug, name, attempt)
            if attempt == CREATE_ATTEMPTS:
                raise SlugConflict(slug) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to create startup '%s'", name)
            raise DatastoreUnavailable("Failed to create startup") from exc
    db.refresh(startup)

    audit_service.try_record_audit(
        db, user_id=owner.user_id, action="create", entity_id=startup.id, details={"name": name},
    )
    deliver(notifier or LogNotifier(), startup_created_notification(startup.name, startup.slug))

    logger.info("Created startup '%s' (%s) slug=%s by %s", name, startup.id, startup.slug, owner.user_id)
    return startup


def update_startup(
    db: Session,
    startup_id: str,
    actor: Principal,
    updates: dict[str, Any],
    expected_version: Optional[int] = None,
) -> Startup:
    """Owner edit of display fields. The slug is never touched here."""
    startup = get_startup(db, startup_id)
    if startup.owner_id != actor.user_id:
        raise Forbidden("You don't have permission to edit this startup")
    if expected_version is not None and startup.version != expected_version:
        raise VersionConflict(expected=expected_version, actual=startup.version)

    changed = {}
    for field, value in updates.items():
        if field in EDITABLE_FIELDS and getattr(startup, field) != value:
            changed[field] = value
            setattr(startup, field, value)
    if not changed:
        return startup

    startup.version += 1
    startup.updated_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update startup %s", startup_id)
        raise DatastoreUnavailable("Failed to update startup") from exc
    db.refresh(startup)

    audit_service.try_record_audit(
        db, user_id=actor.user_id, action="update", entity_id=startup.id,
        details={"fields": sorted(changed)},
    )
    logger.info("Updated startup %s fields=%s to version %d", startup_id, sorted(changed), startup.version)
    return startup


def list_public_startups(db: Session, limit: int = 50, offset: int = 0) -> list[Startup]:
    """Approved startups, newest first."""
    return (
        db.query(Startup)
        .filter(Startup.status == ModerationStatus.approved.value)
        .order_by(Startup.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_public_startup(db: Session, slug: str) -> Startup:
    startup = (
        db.query(Startup)
        .filter(Startup.slug == slug, Startup.status == ModerationStatus.approved.value)
        .first()
    )
    if not startup:
        raise NotFound()
    return startup


def list_owner_startups(db: Session, owner_id: str) -> list[Startup]:
    return db.query(Startup).filter(Startup.owner_id == owner_id).order_by(Startup.created_at.desc()).all()


def list_for_moderation(db: Session, status_filter: Optional[str] = None) -> list[Startup]:
    """Admin queue; ``status_filter`` must be a valid status when given."""
    query = db.query(Startup)
    if status_filter:
        if status_filter not in VALID_STATUSES:
            raise InvalidStatus(status_filter)
        query = query.filter(Startup.status == status_filter)
    return query.order_by(Startup.created_at.desc()).all()
