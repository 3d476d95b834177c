"""Slug derivation and uniqueness checks for startup records."""
import logging
import re
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from launchpad.errors import InvalidSlug, SlugExhausted
from launchpad.models.startup import SLUG_MAX_LENGTH, Startup

logger = logging.getLogger(__name__)

MIN_SLUG_LENGTH = 3
MAX_SLUG_ATTEMPTS = 100
SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
# Fixed paths under /api/startups that would shadow a public startup page
RESERVED_SLUGS = frozenset({"mine", "slug-availability"})

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG_CHARS = re.compile(r"[^a-z0-9-]+")
_HYPHEN_RUNS = re.compile(r"-{2,}")


def generate_slug(text: Optional[str]) -> str:
    """Derive a URL-safe slug from free text. Empty input gives ``""``."""
    if not text:
        return ""

    slug = str(text).lower().strip()
    slug = _WHITESPACE.sub("-", slug)
    slug = slug.replace("&", "-and-")
    slug = slug.replace("_", "-")
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _HYPHEN_RUNS.sub("-", slug)
    slug = slug.strip("-")
    # Cutting at the column width can leave a dangling hyphen
    return slug[:SLUG_MAX_LENGTH].rstrip("-")


def is_valid_slug(slug: Optional[str]) -> bool:
    """Format check only; reserved route names also count as invalid."""
    return bool(
        slug
        and slug not in RESERVED_SLUGS
        and MIN_SLUG_LENGTH <= len(slug) <= SLUG_MAX_LENGTH
        and SLUG_PATTERN.match(slug)
    )


def is_slug_available(db: Session, candidate: str, exclude_id: Optional[str] = None) -> bool:
    """True when ``candidate`` is well-formed and no other startup holds it.

    Database errors count as "not available" so an outage can never let a
    duplicate through.
    """
    if not candidate or len(candidate) < MIN_SLUG_LENGTH:
        return False
    if not SLUG_PATTERN.match(candidate):
        return False
    if candidate in RESERVED_SLUGS:
        return False

    try:
        query = db.query(Startup.id).filter(Startup.slug == candidate)
        if exclude_id:
            query = query.filter(Startup.id != exclude_id)
        taken = query.limit(1).first()
    except SQLAlchemyError:
        # Postgres refuses further statements until the failed transaction ends
        db.rollback()
        logger.exception("Slug availability check failed for '%s'", candidate)
        return False

    return taken is None


def generate_unique_slug(db: Session, base_name: str, exclude_id: Optional[str] = None) -> str:
    """Return an unused slug for ``base_name``, suffixing ``-1``, ``-2``... on collision.

    Raises ``InvalidSlug`` when the name has no slug-able characters and
    ``SlugExhausted`` once ``MAX_SLUG_ATTEMPTS`` suffixes are all taken.
    """
    slug = generate_slug(base_name)
    if not slug:
        raise InvalidSlug(base_name)

    if is_slug_available(db, slug, exclude_id):
        return slug

    for counter in range(1, MAX_SLUG_ATTEMPTS + 1):
        suffix = f"-{counter}"
        stem = slug[: SLUG_MAX_LENGTH - len(suffix)].rstrip("-")
        candidate = f"{stem}{suffix}"
        if is_slug_available(db, candidate, exclude_id):
            logger.info("Slug '%s' taken, using '%s'", slug, candidate)
            return candidate

    logger.warning("Gave up finding a slug for '%s' after %d attempts", slug, MAX_SLUG_ATTEMPTS)
    raise SlugExhausted(slug, MAX_SLUG_ATTEMPTS)
