"""Container — a sea container that shipments are consolidated into.

Lifecycle:  registered → received → loading → loaded → sending → in_transit
            → arrived → unloaded → delivered
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.trackable import TrackableMixin


class ContainerStatus(str, enum.Enum):
    REGISTERED = "registered"
    RECEIVED = "received"
    LOADING = "loading"
    LOADED = "loaded"
    SENDING = "sending"
    IN_TRANSIT = "in_transit"
    ARRIVED = "arrived"
    UNLOADED = "unloaded"
    DELIVERED = "delivered"


ACTIVE_CONTAINER_STATUSES = (
    ContainerStatus.LOADING.value,
    ContainerStatus.LOADED.value,
    ContainerStatus.IN_TRANSIT.value,
)


class Container(TrackableMixin, Base):
    __tablename__ = "containers"
    __table_args__ = (
        UniqueConstraint("organization", "container_number", name="uq_container_org_number"),
    )

    # ISO 6346, e.g. MSCU1234567
    container_number: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    # "20GP", "40HC", ...
    size_type: Mapped[str | None] = mapped_column(String(20))

    # ── Voyage ───────────────────────────────────────────────
    vessel_name: Mapped[str | None] = mapped_column(String(255))
    departure_date: Mapped[datetime | None] = mapped_column(DateTime)
    eta: Mapped[datetime | None] = mapped_column(DateTime)
    arrival_date: Mapped[datetime | None] = mapped_column(DateTime)
    current_location: Mapped[str | None] = mapped_column(String(255))

    # Deletion is refused while shipments reference the container
    shipments = relationship(
        "Shipment", back_populates="container", lazy="raise", passive_deletes=True
    )

    @property
    def code(self) -> str:
        return self.container_number
