"""Pydantic schemas for shipments."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.shipment import ShipmentStatus


class PartnerAssignmentIn(BaseModel):
    partner_id: str | None = None
    customer_id: str | None = None


class PartnerAssignmentOut(BaseModel):
    partner_id: str
    customer_id: str


class _ShipmentFields(BaseModel):
    customer_id: str | None = None
    partner_id: str | None = None
    customer_ids: list[str] | None = None
    partner_ids: list[str] | None = None
    partner_customer_id: str | None = None
    partner_assignments: list[PartnerAssignmentIn] | None = None
    status: ShipmentStatus | None = None
    description: str | None = None
    cbm: float | None = Field(None, ge=0)
    quantity: int | None = Field(None, ge=0)
    received_quantity: int | None = Field(None, ge=0)
    origin_warehouse_id: str | None = None
    current_warehouse_id: str | None = None
    received_at: datetime | None = None


class ShipmentCreate(_ShipmentFields):
    """Payload for POST /api/shipments/ (create, or update if the code exists)."""
    tracking_number: str = Field(..., min_length=1, max_length=50)


class ShipmentUpdate(_ShipmentFields):
    """Payload for PATCH /api/shipments/{tracking_number}."""


class ShipmentOut(BaseModel):
    id: str
    organization: str
    tracking_number: str
    status: str
    customer_id: str | None
    partner_id: str | None
    partner_customer_id: str | None
    customer_ids: list[str] = []
    partner_ids: list[str] = []
    partner_assignments: list[PartnerAssignmentOut] = []
    description: str | None
    cbm: float | None
    quantity: int | None
    received_quantity: int | None
    origin_warehouse_id: str | None
    current_warehouse_id: str | None
    container_id: str | None
    received_at: datetime | None
    delivered_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
