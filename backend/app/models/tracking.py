"""Tracking ledger and code registry.

TrackingEntry is append-only: rows are never updated or deleted, not even
when the entity they describe is deleted.  The integer primary key breaks
ties between entries written in the same clock tick.

TrackingCode registers which entity a code belongs to within a tenant,
so a code cannot be reused across shipments and containers.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class TrackingEntry(Base):
    __tablename__ = "tracking_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    tracking_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    # shipment | container
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    # {"source": "status_update", "actor_id": "...", "previous_status": "..."}
    meta: Mapped[dict | None] = mapped_column("metadata", JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )


class TrackingCode(Base):
    __tablename__ = "tracking_codes"

    organization: Mapped[str] = mapped_column(String(30), primary_key=True)
    code: Mapped[str] = mapped_column(String(50), primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
