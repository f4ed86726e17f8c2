"""Read-only customer/partner lookups used to enrich event snapshots."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.directory import Customer, Partner


async def get_customer(db: AsyncSession, customer_id: str) -> Customer | None:
    return (
        await db.execute(select(Customer).where(Customer.id == customer_id))
    ).scalar_one_or_none()


async def get_partner(db: AsyncSession, partner_id: str) -> Partner | None:
    return (
        await db.execute(select(Partner).where(Partner.id == partner_id))
    ).scalar_one_or_none()


async def enrich_snapshot(db: AsyncSession, snapshot: dict) -> dict:
    """Attach `customer` and `partner` display info ({id, name, phone}).

    Uses the effective owner ids (scalar first, then legacy list head).
    An id with no directory record yields `{"id": ..., "name": None, "phone": None}`
    so subscribers can still address the recipient.
    """
    customer_id = snapshot.get("customer_id") or next(iter(snapshot.get("customer_ids") or []), None)
    partner_id = snapshot.get("partner_id") or next(iter(snapshot.get("partner_ids") or []), None)

    snapshot["customer"] = None
    if customer_id:
        customer = await get_customer(db, customer_id)
        snapshot["customer"] = {
            "id": customer_id,
            "name": customer.name if customer else None,
            "phone": customer.phone if customer else None,
        }

    snapshot["partner"] = None
    if partner_id:
        partner = await get_partner(db, partner_id)
        snapshot["partner"] = {
            "id": partner_id,
            "name": partner.name if partner else None,
            "phone": partner.phone_number if partner else None,
        }
    return snapshot
