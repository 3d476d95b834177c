"""Admin API routes: moderation queue, status override, integrity sweeps."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from launchpad.auth import Principal, require_admin
from launchpad.database import get_db
from launchpad.errors import NotFound
from launchpad.models.profile import Profile
from launchpad.routers.startups import status_change_response
from launchpad.schemas.admin import AuditLogOut, ProfileOut, RoleUpdate
from launchpad.schemas.startup import (
    ReconciliationOut,
    SlugRepairOut,
    StartupOut,
    StatusChangeOut,
    StatusChangeRequest,
)
from launchpad.services import audit_service, reconciliation_service, startup_service, status_service
from launchpad.services.notification_service import get_notifier
from launchpad.services.status_service import TransitionMode

logger = logging.getLogger(__name__)
router = APIRouter()


def reconciliation_response(result: reconciliation_service.ReconciliationResult) -> ReconciliationOut:
    return ReconciliationOut(
        repaired_count=result.repaired_count,
        repaired_ids=result.repaired_ids,
        repaired=[
            {"id": r.id, "name": r.name, "previous_status": r.previous_status} for r in result.repaired
        ],
    )


@router.get("/startups", response_model=list[StartupOut])
def list_moderation_queue(
    status_filter: Optional[str] = Query(None, alias="status"),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All startups, optionally filtered by moderation status."""
    return startup_service.list_for_moderation(db, status_filter)


@router.post("/startups/{startup_id}/status", response_model=StatusChangeOut)
def set_startup_status(
    startup_id: str,
    payload: StatusChangeRequest,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """Administrator override: any startup, any valid status."""
    change = status_service.set_status(
        db=db,
        startup_id=startup_id,
        new_status=payload.status,
        principal=principal,
        mode=TransitionMode.admin,
        notifier=notifier,
        expected_version=payload.version,
    )
    return status_change_response(change)


@router.post("/reconcile", response_model=ReconciliationOut)
def run_reconciliation(principal: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    logger.info("Manual reconciliation triggered by %s", principal.user_id)
    return reconciliation_response(reconciliation_service.reconcile(db))


@router.post("/repair-slugs", response_model=SlugRepairOut)
def run_slug_repair(principal: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    logger.info("Slug repair triggered by %s", principal.user_id)
    result = reconciliation_service.repair_slugs(db)
    return SlugRepairOut(checked=result.checked, repaired=result.repaired, failed_ids=result.failed_ids)


@router.get("/audit-log", response_model=list[AuditLogOut])
def list_audit_log(
    entity_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return audit_service.list_audit_entries(db, entity_id=entity_id, action=action, limit=limit)


@router.patch("/users/{user_id}/role", response_model=ProfileOut)
def set_user_role(
    user_id: str,
    payload: RoleUpdate,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Grant or revoke the admin role."""
    role = payload.role
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise NotFound("User not found")
    previous_role = profile.role
    profile.role = role.value
    db.commit()
    db.refresh(profile)
    audit_service.try_record_audit(
        db, user_id=principal.user_id, action=f"set_role_{role.value}", entity_id=user_id,
        entity_type="profile", details={"previous_role": previous_role},
    )
    logger.info("User %s role %s -> %s by %s", user_id, previous_role, role.value, principal.user_id)
    return profile
