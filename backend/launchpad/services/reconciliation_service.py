"""Integrity sweeps over the startups table.

``reconcile`` forces any status outside {pending, approved, rejected} back to
pending in one batch update. ``repair_slugs`` regenerates malformed slugs.
Both are safe to re-run; a clean table produces no writes.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from launchpad.errors import DatastoreUnavailable, InvalidSlug, SlugExhausted
from launchpad.models.startup import ModerationStatus, Startup, VALID_STATUSES
from launchpad.services.slug_service import generate_unique_slug, is_valid_slug

logger = logging.getLogger(__name__)


def _has_invalid_status():
    # NOT IN never matches NULL, so NULLs need their own clause
    return or_(Startup.status.is_(None), Startup.status.not_in(VALID_STATUSES))


@dataclass
class RepairedStartup:
    id: str
    name: str
    previous_status: Optional[str]


@dataclass
class ReconciliationResult:
    repaired: list[RepairedStartup] = field(default_factory=list)

    @property
    def repaired_count(self) -> int:
        return len(self.repaired)

    @property
    def repaired_ids(self) -> list[str]:
        return [r.id for r in self.repaired]


@dataclass
class SlugRepairResult:
    checked: int = 0
    repaired: list[dict[str, Any]] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)


def reconcile(db: Session) -> ReconciliationResult:
    """Reset every startup with a missing or unknown status to ``pending``."""
    try:
        rows = (
            db.query(Startup.id, Startup.name, Startup.status)
            .filter(_has_invalid_status())
            .order_by(Startup.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Reconciliation query failed")
        raise DatastoreUnavailable("Reconciliation query failed") from exc

    candidates = [RepairedStartup(id=r.id, name=r.name, previous_status=r.status) for r in rows]
    if not candidates:
        logger.info("Reconciliation: no startups need updates")
        return ReconciliationResult()

    try:
        # Re-checking the status skips rows that became valid after the SELECT
        updated_ids = set(db.execute(
            update(Startup)
            .where(Startup.id.in_([c.id for c in candidates]), _has_invalid_status())
            .values(
                status=ModerationStatus.pending.value,
                updated_at=datetime.now(timezone.utc),
                version=Startup.version + 1,
            )
            .returning(Startup.id)
            .execution_options(synchronize_session=False)
        ).scalars())
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Reconciliation update failed for %d startups", len(candidates))
        raise DatastoreUnavailable("Reconciliation update failed") from exc

    result = ReconciliationResult(repaired=[c for c in candidates if c.id in updated_ids])
    if len(updated_ids) < len(candidates):
        logger.info(
            "Reconciliation skipped %d startups whose status changed during the sweep",
            len(candidates) - len(updated_ids),
        )
    for repaired in result.repaired:
        logger.info(
            "Reconciled startup %s ('%s'): status %r -> pending",
            repaired.id, repaired.name, repaired.previous_status,
        )
    logger.info("Reconciliation repaired %d startups", result.repaired_count)
    return result


def repair_slugs(db: Session) -> SlugRepairResult:
    """Give every startup with a malformed slug a fresh unique one.

    One bad record does not stop the sweep; its id lands in ``failed_ids``.
    """
    try:
        startups = db.query(Startup).order_by(Startup.created_at).all()
    except SQLAlchemyError as exc:
        logger.exception("Slug repair query failed")
        raise DatastoreUnavailable("Slug repair query failed") from exc

    result = SlugRepairResult(checked=len(startups))
    for startup in startups:
        if is_valid_slug(startup.slug):
            continue

        startup_id, old_slug = startup.id, startup.slug
        try:
            new_slug = generate_unique_slug(db, startup.name, exclude_id=startup_id)
            startup.slug = new_slug
            startup.updated_at = datetime.now(timezone.utc)
            startup.version += 1
            db.commit()
        except (SQLAlchemyError, InvalidSlug, SlugExhausted):
            db.rollback()
            logger.exception("Could not repair slug %r of startup %s", old_slug, startup_id)
            result.failed_ids.append(startup_id)
            continue

        logger.info("Repaired slug for '%s' (%s): %r -> %r", startup.name, startup_id, old_slug, new_slug)
        result.repaired.append({"id": startup_id, "old_slug": old_slug, "new_slug": new_slug})

    logger.info("Slug repair checked %d startups, repaired %d", result.checked, len(result.repaired))
    return result
