"""Shipment router.

Endpoints:
    POST    /api/shipments/                            Create (or update an existing code)
    GET     /api/shipments/                            List (owners see their own)
    GET     /api/shipments/{shipment_id}               Detail
    GET     /api/shipments/{shipment_id}/timeline      Tracking history
    PATCH   /api/shipments/{tracking_number}           Combined update (role rules apply)
    POST    /api/shipments/{tracking_number}/actions   Single tagged update
    DELETE  /api/shipments/{shipment_id}               Delete (admin)

Partners may create; the new shipment is theirs.  Partner responses carry
their own customer assignment in customer_id.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import Caller, ensure_can_view, get_current_caller, present, require_role
from app.database import get_db
from app.schemas.common import PaginatedResponse
from app.schemas.shipment import ShipmentCreate, ShipmentOut, ShipmentUpdate
from app.schemas.tracking import TimelineEntry
from app.schemas.updates import UpdateRequest
from app.services import assignment, tracking_ledger
from app.services.assignment import CallerRole, EntityKind
from app.utils.cache import invalidate_tracking

router = APIRouter()


@router.post("/", response_model=ShipmentOut, status_code=201)
async def upsert_shipment(
    body: ShipmentCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(require_role(CallerRole.ADMIN, CallerRole.PARTNER)),
):
    """201 when created; 200 when the tracking number already existed."""
    result = await assignment.upsert_as_owner(
        db, caller.organization, EntityKind.SHIPMENT, caller.role, caller.id, body,
    )
    if result.created:
        # An earlier lookup may have cached the code as unknown
        await invalidate_tracking(result.entity.organization, result.entity.tracking_number)
    else:
        response.status_code = 200
    return present(caller, ShipmentOut, result.entity)


@router.get("/", response_model=PaginatedResponse[ShipmentOut])
async def list_shipments(
    status: str | None = Query(None),
    partner_id: str | None = Query(None),
    container_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    filters = {"status": status, "partner_id": partner_id, "container_id": container_id}
    if caller.role is CallerRole.CUSTOMER:
        filters.update(customer_id=caller.id, partner_id=None)
    elif caller.role is CallerRole.PARTNER:
        filters["partner_id"] = caller.id
    items, total = await assignment.list_entities(
        db, caller.organization, EntityKind.SHIPMENT, limit=limit, offset=offset, **filters,
    )
    return PaginatedResponse(
        items=[present(caller, ShipmentOut, item) for item in items],
        total=total, limit=limit, offset=offset,
    )


@router.get("/{shipment_id}", response_model=ShipmentOut)
async def get_shipment(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    shipment = await assignment.get_entity(db, caller.organization, EntityKind.SHIPMENT, shipment_id)
    ensure_can_view(caller, shipment)
    return present(caller, ShipmentOut, shipment)


@router.get("/{shipment_id}/timeline", response_model=list[TimelineEntry])
async def get_shipment_timeline(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    shipment = await assignment.get_entity(db, caller.organization, EntityKind.SHIPMENT, shipment_id)
    ensure_can_view(caller, shipment)
    return await tracking_ledger.timeline(db, shipment.tracking_number, tenant=shipment.organization)


@router.patch("/{tracking_number}", response_model=ShipmentOut)
async def update_shipment(
    tracking_number: str,
    body: ShipmentUpdate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    shipment = await assignment.update_as_owner(
        db, caller.organization, EntityKind.SHIPMENT, tracking_number,
        caller.role, caller.id, body,
    )
    return present(caller, ShipmentOut, shipment)


@router.post("/{tracking_number}/actions", response_model=ShipmentOut)
async def apply_shipment_action(
    tracking_number: str,
    body: UpdateRequest,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    shipment = await assignment.update_as_owner(
        db, caller.organization, EntityKind.SHIPMENT, tracking_number,
        caller.role, caller.id, body,
    )
    return present(caller, ShipmentOut, shipment)


@router.delete("/{shipment_id}", status_code=204)
async def delete_shipment(
    shipment_id: str,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(require_role(CallerRole.ADMIN)),
):
    shipment = await assignment.delete_entity(db, caller.organization, EntityKind.SHIPMENT, shipment_id)
    await invalidate_tracking(shipment.organization, shipment.tracking_number)
