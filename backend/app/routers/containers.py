"""Container router.

Endpoints:
    POST    /api/containers/                                Create (or update an existing number)
    GET     /api/containers/                                List (owners see their own)
    GET     /api/containers/{container_id}                  Detail
    GET     /api/containers/{container_id}/shipments        Shipments loaded into it
    POST    /api/containers/{container_id}/load             Load shipments (admin)
    PUT     /api/containers/{container_id}/assign-customer  Claim for a customer (admin)
    PATCH   /api/containers/{container_number}              Combined update (role rules apply)
    POST    /api/containers/{container_number}/actions      Single tagged update
    DELETE  /api/containers/{container_id}                  Delete (admin, only when empty)
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import Caller, ensure_can_view, get_current_caller, present, require_role
from app.database import get_db
from app.schemas.common import PaginatedResponse
from app.schemas.container import (
    AssignCustomerRequest,
    ContainerCreate,
    ContainerOut,
    ContainerUpdate,
    LoadShipmentsRequest,
)
from app.schemas.shipment import ShipmentOut
from app.schemas.updates import ClaimRequest, UpdateRequest
from app.services import assignment
from app.services.assignment import CallerRole, EntityKind
from app.utils.cache import invalidate_tracking

router = APIRouter()


@router.post("/", response_model=ContainerOut, status_code=201)
async def upsert_container(
    body: ContainerCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(require_role(CallerRole.ADMIN, CallerRole.PARTNER)),
):
    """201 when created; 200 when the container number already existed."""
    result = await assignment.upsert_as_owner(
        db, caller.organization, EntityKind.CONTAINER, caller.role, caller.id, body,
    )
    if result.created:
        await invalidate_tracking(result.entity.organization, result.entity.container_number)
    else:
        response.status_code = 200
    return present(caller, ContainerOut, result.entity)


@router.get("/", response_model=PaginatedResponse[ContainerOut])
async def list_containers(
    status: str | None = Query(None),
    partner_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    filters = {"status": status, "partner_id": partner_id}
    if caller.role is CallerRole.CUSTOMER:
        filters.update(customer_id=caller.id, partner_id=None)
    elif caller.role is CallerRole.PARTNER:
        filters["partner_id"] = caller.id
    items, total = await assignment.list_entities(
        db, caller.organization, EntityKind.CONTAINER, limit=limit, offset=offset, **filters,
    )
    return PaginatedResponse(
        items=[present(caller, ContainerOut, item) for item in items],
        total=total, limit=limit, offset=offset,
    )


@router.get("/{container_id}", response_model=ContainerOut)
async def get_container(
    container_id: str,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    container = await assignment.get_entity(db, caller.organization, EntityKind.CONTAINER, container_id)
    ensure_can_view(caller, container)
    return present(caller, ContainerOut, container)


@router.get("/{container_id}/shipments", response_model=list[ShipmentOut])
async def list_container_shipments(
    container_id: str,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(require_role(CallerRole.ADMIN)),
):
    return await assignment.container_shipments(db, caller.organization, container_id)


@router.post("/{container_id}/load", response_model=list[ShipmentOut])
async def load_container(
    container_id: str,
    body: LoadShipmentsRequest,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(require_role(CallerRole.ADMIN)),
):
    return await assignment.load_shipments(
        db, caller.organization, container_id, body.shipment_ids, actor_id=caller.id,
    )


@router.put("/{container_id}/assign-customer", response_model=ContainerOut)
async def assign_container_customer(
    container_id: str,
    body: AssignCustomerRequest,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(require_role(CallerRole.ADMIN)),
):
    return await assignment.claim_by_id(
        db, caller.organization, EntityKind.CONTAINER, container_id,
        ClaimRequest(customer_id=body.customer_id), actor_id=caller.id,
    )


@router.patch("/{container_number}", response_model=ContainerOut)
async def update_container(
    container_number: str,
    body: ContainerUpdate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    container = await assignment.update_as_owner(
        db, caller.organization, EntityKind.CONTAINER, container_number,
        caller.role, caller.id, body,
    )
    return present(caller, ContainerOut, container)


@router.post("/{container_number}/actions", response_model=ContainerOut)
async def apply_container_action(
    container_number: str,
    body: UpdateRequest,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    container = await assignment.update_as_owner(
        db, caller.organization, EntityKind.CONTAINER, container_number,
        caller.role, caller.id, body,
    )
    return present(caller, ContainerOut, container)


@router.delete("/{container_id}", status_code=204)
async def delete_container(
    container_id: str,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(require_role(CallerRole.ADMIN)),
):
    container = await assignment.delete_entity(db, caller.organization, EntityKind.CONTAINER, container_id)
    await invalidate_tracking(container.organization, container.container_number)
