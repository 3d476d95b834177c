"""Authentication glue: resolves the acting principal for a request.

Identity comes from Supabase Auth (bearer token → ``/auth/v1/user``); the
role comes from our own ``profiles`` table, normalized to a single string
before it reaches the service layer.
"""
import hmac
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from fastapi import Depends, Header
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from launchpad.config import settings
from launchpad.database import get_db
from launchpad.errors import DatastoreUnavailable, Forbidden, Unauthorized
from launchpad.models.profile import Profile, Role

logger = logging.getLogger(__name__)


@dataclass
class Principal:
    user_id: str
    role: str = Role.user.value
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin.value


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthorized("Authentication requires a bearer token")
    token = authorization.split(" ", maxsplit=1)[1].strip()
    if not token:
        raise Unauthorized("Empty bearer token")
    return token


def _fetch_supabase_user(token: str) -> dict[str, Any]:
    if not settings.SUPABASE_URL or not settings.SUPABASE_ANON_KEY:
        raise DatastoreUnavailable("Supabase auth is not configured")

    url = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/user"
    headers = {"Authorization": f"Bearer {token}", "apikey": settings.SUPABASE_ANON_KEY}
    try:
        response = httpx.get(url, headers=headers, timeout=settings.AUTH_TIMEOUT_SECONDS)
    except httpx.HTTPError as exc:
        logger.error("Supabase auth verification unavailable: %s", exc)
        raise DatastoreUnavailable("Supabase auth verification unavailable") from exc

    if response.status_code in (401, 403):
        raise Unauthorized("Invalid bearer token")
    if response.status_code != 200:
        logger.error("Supabase auth returned HTTP %s", response.status_code)
        raise DatastoreUnavailable("Supabase auth verification failed")
    return response.json()


def load_principal(db: Session, user_id: str, email: Optional[str] = None) -> Principal:
    """Build a Principal from the profiles table, creating a default profile on first sight."""
    try:
        profile = db.query(Profile).filter(Profile.id == user_id).first()
        if profile is None:
            profile = Profile(id=user_id, email=email, role=Role.user.value)
            db.add(profile)
            db.commit()
            logger.info("Created profile for new user %s", user_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not load profile for %s", user_id)
        raise DatastoreUnavailable() from exc

    role = profile.role if profile.role in (Role.user.value, Role.admin.value) else Role.user.value
    return Principal(user_id=profile.id, role=role, email=profile.email or email)


def get_current_principal(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> Principal:
    """FastAPI dependency: the authenticated caller."""
    token = _bearer_token(authorization)
    user = _fetch_supabase_user(token)
    user_id = user.get("id")
    if not isinstance(user_id, str) or not user_id:
        raise Unauthorized("Invalid bearer token")
    return load_principal(db, user_id, email=user.get("email"))


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """FastAPI dependency: the caller, who must hold the admin role."""
    if not principal.is_admin:
        raise Forbidden("Admin access required")
    return principal


def verify_cron_secret(authorization: Optional[str] = Header(default=None, alias="Authorization")) -> None:
    """FastAPI dependency: the scheduler must present ``Bearer <CRON_SECRET>``."""
    expected = settings.CRON_SECRET
    if not expected:
        raise Unauthorized("Cron endpoints are disabled")
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {expected}"):
        raise Unauthorized()
