"""Pydantic schemas for Startups."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class StartupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    tagline: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    website_url: Optional[str] = Field(None, max_length=500)


class StartupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    tagline: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    website_url: Optional[str] = Field(None, max_length=500)
    version: Optional[int] = None  # optimistic locking when supplied


class StartupOut(BaseModel):
    id: str
    name: str
    slug: str
    tagline: Optional[str] = None
    description: Optional[str] = None
    website_url: Optional[str] = None
    status: Optional[str] = None
    owner_id: str
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class StatusChangeRequest(BaseModel):
    # Plain string so unknown values reach the service and fail as InvalidStatus
    status: str
    version: Optional[int] = None


class NotificationOut(BaseModel):
    to: str
    subject: str
    delivered: bool


class StatusChangeOut(BaseModel):
    message: str = "Status updated successfully"
    startup: StartupOut
    notifications: list[NotificationOut] = []


class SlugAvailabilityOut(BaseModel):
    slug: str
    available: bool


class RepairedStartupOut(BaseModel):
    id: str
    name: str
    previous_status: Optional[str] = None


class ReconciliationOut(BaseModel):
    repaired_count: int
    repaired_ids: list[str] = []
    repaired: list[RepairedStartupOut] = []


class SlugRepairOut(BaseModel):
    checked: int
    repaired: list[dict[str, Any]] = []
    failed_ids: list[str] = []
