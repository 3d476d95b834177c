"""Startup ORM model and its moderation status enumeration."""
import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, Integer, ForeignKey
from sqlalchemy.sql import func
from launchpad.database import Base

SLUG_MAX_LENGTH = 50


class ModerationStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


VALID_STATUSES = tuple(s.value for s in ModerationStatus)


class Startup(Base):
    __tablename__ = "startups"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    slug = Column(String(SLUG_MAX_LENGTH), nullable=False, unique=True, index=True)
    tagline = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    website_url = Column(String(500), nullable=True)
    # Plain text rather than an Enum column: legacy rows may hold anything
    status = Column(String(20), nullable=True, default=ModerationStatus.pending.value)
    owner_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
