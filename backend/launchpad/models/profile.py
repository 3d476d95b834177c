"""Profile ORM model: one row per authenticated principal."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from launchpad.database import Base


class Role(str, enum.Enum):
    user = "user"
    admin = "admin"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=True)
    full_name = Column(String(150), nullable=True)
    # Single normalized role; never a joined relation
    role = Column(String(20), nullable=False, default=Role.user.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
