"""Shipment — a customer parcel moving from the China warehouse to Ghana.

Lifecycle (core):  received → inspected → loaded → in_transit → arrived_ghana → delivered

Location-qualified variants track the parcel through origin and the
regional hubs (Accra, Kumasi, Nkoranza).
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.trackable import TrackableMixin


class ShipmentStatus(str, enum.Enum):
    RECEIVED = "received"
    INSPECTED = "inspected"
    LOADED = "loaded"
    IN_TRANSIT = "in_transit"
    ARRIVED_GHANA = "arrived_ghana"
    DELIVERED = "delivered"
    # Origin
    RECEIVED_CHINA = "received_china"
    LOADED_CHINA = "loaded_china"
    # Regional hubs
    RECEIVED_ACCRA = "received_accra"
    DELIVERED_ACCRA = "delivered_accra"
    DISPATCHED_KUMASI = "dispatched_kumasi"
    RECEIVED_KUMASI = "received_kumasi"
    DELIVERED_KUMASI = "delivered_kumasi"
    DISPATCHED_NKORANZA = "dispatched_nkoranza"
    RECEIVED_NKORANZA = "received_nkoranza"
    DELIVERED_NKORANZA = "delivered_nkoranza"


class Shipment(TrackableMixin, Base):
    __tablename__ = "shipments"
    __table_args__ = (
        UniqueConstraint("organization", "tracking_number", name="uq_shipment_org_tracking"),
    )

    tracking_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # ── Cargo ────────────────────────────────────────────────
    description: Mapped[str | None] = mapped_column(Text)
    cbm: Mapped[float | None] = mapped_column(Float)
    quantity: Mapped[int | None] = mapped_column(Integer)
    received_quantity: Mapped[int | None] = mapped_column(Integer)

    # ── Location (warehouses are managed elsewhere; opaque ids) ──
    origin_warehouse_id: Mapped[str | None] = mapped_column(String(36))
    current_warehouse_id: Mapped[str | None] = mapped_column(String(36))

    container_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("containers.id"), index=True
    )

    received_at: Mapped[datetime | None] = mapped_column(DateTime)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime)

    container = relationship("Container", back_populates="shipments", lazy="raise")

    @property
    def code(self) -> str:
        return self.tracking_number
