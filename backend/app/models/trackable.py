"""Columns shared by every trackable entity (shipments and containers).

Ownership model:
    customer_id / partner_id        primary owner, at most one set, never changed once set
    customer_ids / partner_ids      legacy multi-valued mirrors, [0] == primary owner
    partner_assignments             [{"partner_id": ..., "customer_id": ...}], one per partner
    partner_customer_id             legacy mirror of partner_assignments[0]["customer_id"]
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column


class TrackableMixin:
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    organization: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    # ── Ownership ────────────────────────────────────────────
    customer_id: Mapped[str | None] = mapped_column(String(36), index=True)
    partner_id: Mapped[str | None] = mapped_column(String(36), index=True)
    partner_customer_id: Mapped[str | None] = mapped_column(String(36))
    customer_ids: Mapped[list] = mapped_column(JSON, default=list)
    partner_ids: Mapped[list] = mapped_column(JSON, default=list)
    partner_assignments: Mapped[list] = mapped_column(JSON, default=list)

    status: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    # Immutable; trackables have no updated_at, the ledger is the change history
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    @property
    def effective_customer_id(self) -> str | None:
        if self.customer_id:
            return self.customer_id
        return self.customer_ids[0] if self.customer_ids else None

    @property
    def effective_partner_id(self) -> str | None:
        if self.partner_id:
            return self.partner_id
        return self.partner_ids[0] if self.partner_ids else None
