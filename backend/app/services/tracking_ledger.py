"""Tracking ledger: append-only status history for shipments and containers.

Usage:
    await record(
        db, tenant, entity_type="shipment", entity_id=shipment.id,
        tracking_code=shipment.tracking_number, status="in_transit",
        metadata={"source": "webhook", "actor_id": None},
    )

The entry is added to the caller's session and committed with the
enclosing transaction.  Storage errors propagate to the caller.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tracking import TrackingEntry
from app.tenancy import scope_for, tenant_code


async def record(
    db: AsyncSession,
    tenant: str,
    *,
    entity_type: str,
    entity_id: str,
    tracking_code: str,
    status: str,
    metadata: dict | None = None,
) -> TrackingEntry:
    """Append one tracking entry to the current DB session."""
    entry = TrackingEntry(
        organization=tenant_code(tenant),
        tracking_number=tracking_code,
        entity_type=entity_type,
        entity_id=entity_id,
        status=status,
        meta=metadata or {},
    )
    db.add(entry)
    await db.flush()  # assign the ordering id
    return entry


async def timeline(
    db: AsyncSession,
    tracking_code: str,
    tenant: str | None = None,
) -> list[TrackingEntry]:
    """Every entry for a code across both entity kinds, oldest first.

    With `tenant` given the tenant scope applies; the super tenant and
    callers passing no tenant see all organizations.
    """
    stmt = select(TrackingEntry).where(TrackingEntry.tracking_number == tracking_code)
    if tenant is not None:
        stmt = stmt.where(scope_for(tenant).clause(TrackingEntry))
    stmt = stmt.order_by(TrackingEntry.created_at, TrackingEntry.id)
    return list((await db.execute(stmt)).scalars().all())


async def entries_for_entity(db: AsyncSession, entity_id: str) -> list[TrackingEntry]:
    result = await db.execute(
        select(TrackingEntry)
        .where(TrackingEntry.entity_id == entity_id)
        .order_by(TrackingEntry.created_at, TrackingEntry.id)
    )
    return list(result.scalars().all())
