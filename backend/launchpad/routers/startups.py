"""Startup API routes: public directory, owner dashboard and owner status changes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from launchpad.auth import Principal, get_current_principal
from launchpad.database import get_db
from launchpad.schemas.startup import (
    SlugAvailabilityOut,
    StartupCreate,
    StartupOut,
    StartupUpdate,
    StatusChangeOut,
    StatusChangeRequest,
)
from launchpad.services import slug_service, startup_service, status_service
from launchpad.services.notification_service import get_notifier
from launchpad.services.status_service import TransitionMode

logger = logging.getLogger(__name__)
router = APIRouter()


def status_change_response(change: status_service.StatusChange) -> StatusChangeOut:
    return StatusChangeOut(
        startup=StartupOut.model_validate(change.record),
        notifications=[
            {"to": n.to, "subject": n.subject, "delivered": n.delivered} for n in change.notifications
        ],
    )


@router.post("/", response_model=StartupOut, status_code=status.HTTP_201_CREATED)
def create_startup(
    payload: StartupCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """Create a startup for the caller; it starts out pending moderation."""
    return startup_service.create_startup(
        db=db,
        owner=principal,
        name=payload.name,
        tagline=payload.tagline,
        description=payload.description,
        website_url=payload.website_url,
        notifier=notifier,
    )


@router.get("/", response_model=list[StartupOut])
def list_startups(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Public directory: approved startups only."""
    return startup_service.list_public_startups(db, limit=limit, offset=offset)


@router.get("/mine", response_model=list[StartupOut])
def list_my_startups(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return startup_service.list_owner_startups(db, principal.user_id)


@router.get("/slug-availability", response_model=SlugAvailabilityOut)
def check_slug_availability(
    slug: str = Query(..., min_length=1),
    exclude_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Live check used by the creation form."""
    return SlugAvailabilityOut(slug=slug, available=slug_service.is_slug_available(db, slug, exclude_id))


@router.get("/{slug}", response_model=StartupOut)
def get_startup_by_slug(slug: str, db: Session = Depends(get_db)):
    """Public startup page; unapproved startups are not visible."""
    return startup_service.get_public_startup(db, slug)


@router.patch("/{startup_id}", response_model=StartupOut)
def update_startup(
    startup_id: str,
    payload: StartupUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Owner edit (partial update, optimistic locking when ``version`` is sent)."""
    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    return startup_service.update_startup(
        db=db,
        startup_id=startup_id,
        actor=principal,
        updates=updates,
        expected_version=payload.version,
    )


@router.post("/{startup_id}/status", response_model=StatusChangeOut)
def set_own_startup_status(
    startup_id: str,
    payload: StatusChangeRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """Owner self-service status change."""
    change = status_service.set_status(
        db=db,
        startup_id=startup_id,
        new_status=payload.status,
        principal=principal,
        mode=TransitionMode.owner,
        notifier=notifier,
        expected_version=payload.version,
    )
    return status_change_response(change)
