"""Error kinds raised by the service layer.

Each one is an ``HTTPException`` so routers can let them propagate and
FastAPI renders the right status code; scripts and jobs catch them by type.
"""
from typing import Optional

from fastapi import HTTPException, status


class InvalidStatus(HTTPException):
    def __init__(self, value: Optional[str]):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status value: {value!r}. Expected one of pending, approved, rejected.",
        )
        self.value = value


class NotFound(HTTPException):
    def __init__(self, detail: str = "Startup not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Forbidden(HTTPException):
    def __init__(self, detail: str = "You are not allowed to modify this startup"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class DatastoreUnavailable(HTTPException):
    def __init__(self, detail: str = "Database unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class VersionConflict(HTTPException):
    def __init__(self, expected: int, actual: int):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Version mismatch: expected {actual}, got {expected}. Re-fetch and retry.",
        )
        self.expected = expected
        self.actual = actual


class SlugExhausted(HTTPException):
    def __init__(self, base_slug: str, attempts: int):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"No available slug for '{base_slug}' after {attempts} attempts",
        )
        self.base_slug = base_slug
        self.attempts = attempts


class InvalidSlug(HTTPException):
    def __init__(self, name: Optional[str]):
        super().__init__(
            # Starlette 0.48 deprecated status.HTTP_422_UNPROCESSABLE_ENTITY
            status_code=422,
            detail=f"Cannot derive a slug from name {name!r}",
        )


class SlugConflict(HTTPException):
    def __init__(self, slug: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Slug '{slug}' was claimed by another startup, please retry",
        )
        self.slug = slug
