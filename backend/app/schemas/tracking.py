"""Pydantic schemas for the public tracking endpoints."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class TimelineEntry(BaseModel):
    id: int
    entity_type: str
    entity_id: str
    status: str
    # ORM attribute is `meta`; the column and the wire name are "metadata"
    metadata: dict | None = Field(None, validation_alias="meta")
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class TrackResponse(BaseModel):
    type: Literal["shipment", "container", "unknown"]
    entity: dict[str, Any] | None = None
    timeline: list[TimelineEntry] = []


class WebhookPayload(BaseModel):
    """Carrier event pushed to POST /api/tracking/webhook.

    `data` carries the update, e.g. {"status": "in_transit", "vessel_name": "..."}.
    """
    event: str
    tracking_number: str | None = None
    container_number: str | None = None
    organization: str
    data: dict[str, Any] = {}
