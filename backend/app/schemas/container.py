"""Pydantic schemas for containers."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.container import ContainerStatus
from app.schemas.shipment import PartnerAssignmentIn, PartnerAssignmentOut


class _ContainerFields(BaseModel):
    customer_id: str | None = None
    partner_id: str | None = None
    customer_ids: list[str] | None = None
    partner_ids: list[str] | None = None
    partner_customer_id: str | None = None
    partner_assignments: list[PartnerAssignmentIn] | None = None
    status: ContainerStatus | None = None
    size_type: str | None = Field(None, max_length=20)
    vessel_name: str | None = None
    departure_date: datetime | None = None
    eta: datetime | None = None
    arrival_date: datetime | None = None
    current_location: str | None = None


class ContainerCreate(_ContainerFields):
    """Payload for POST /api/containers/."""
    container_number: str = Field(..., min_length=4, max_length=20)


class ContainerUpdate(_ContainerFields):
    """Payload for PATCH /api/containers/{container_number}."""


class LoadShipmentsRequest(BaseModel):
    """Payload for POST /api/containers/{id}/load."""
    shipment_ids: list[str] = Field(..., min_length=1)


class AssignCustomerRequest(BaseModel):
    """Payload for PUT /api/containers/{id}/assign-customer."""
    customer_id: str


class ContainerOut(BaseModel):
    id: str
    organization: str
    container_number: str
    status: str
    customer_id: str | None
    partner_id: str | None
    partner_customer_id: str | None
    customer_ids: list[str] = []
    partner_ids: list[str] = []
    partner_assignments: list[PartnerAssignmentOut] = []
    size_type: str | None
    vessel_name: str | None
    departure_date: datetime | None
    eta: datetime | None
    arrival_date: datetime | None
    current_location: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
