"""Pydantic schemas for in-app notifications."""

from datetime import datetime

from pydantic import BaseModel, Field


class NotificationOut(BaseModel):
    id: str
    recipient_id: str
    recipient_type: str
    title: str
    message: str
    type: str
    read: bool
    metadata: dict | None = Field(None, validation_alias="meta")
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class UnreadCount(BaseModel):
    unread: int
