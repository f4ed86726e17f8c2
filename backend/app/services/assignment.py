"""Assignment and status engine for shipments and containers.

Ownership rules (apply to both kinds):
  - An entity is owned by at most one of {customer, partner}.
  - Once customer_id or partner_id is set it never changes; re-asserting
    the same value is a no-op.
  - Claims of an unowned entity are a conditional UPDATE ("only if both
    owner columns are still NULL"); a lost race is judged against the
    winner's value.
  - A partner owner may map one of its own customers onto the entity
    (partner_assignments, one entry per partner, mirrored into the
    legacy partner_customer_id).

Every stored status change appends one TrackingEntry and queues one
StatusChangedEvent, dispatched only after the transaction commits.
Writes that change nothing produce neither.

All functions take the tenant explicitly and never commit; the caller
(request dependency, CLI, test) owns the transaction.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from pydantic import BaseModel, TypeAdapter
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.events.bus import StatusEventBus, publish_after_commit
from app.events.status_events import StatusChangedEvent, snapshot_of
from app.middleware.exceptions import (
    BusinessLogicError,
    ConflictingOwnershipError,
    DuplicateTrackingCodeError,
    ForbiddenOwnerError,
    HasDependentsError,
    OwnershipLockedError,
    PartnerOwnsAssignmentError,
    ResourceNotFoundError,
)
from app.models.container import ACTIVE_CONTAINER_STATUSES, Container, ContainerStatus
from app.models.shipment import Shipment, ShipmentStatus
from app.models.tracking import TrackingCode
from app.schemas.updates import (
    REQUEST_ORDER,
    ClaimRequest,
    PartnerAssignRequest,
    StatusUpdateRequest,
    UpdateRequest,
)
from app.services import tracking_ledger
from app.services.directory import enrich_snapshot
from app.tenancy import scope_for, tenant_code

logger = logging.getLogger(__name__)


class EntityKind(str, enum.Enum):
    SHIPMENT = "shipment"
    CONTAINER = "container"


class CallerRole(str, enum.Enum):
    ADMIN = "admin"
    PARTNER = "partner"
    CUSTOMER = "customer"


# Ledger sources
SOURCE_CREATED = "created"
SOURCE_STATUS_UPDATE = "status_update"
SOURCE_WEBHOOK = "webhook"
SOURCE_CONTAINER_LOAD = "container_load"


@dataclass(frozen=True)
class _KindSpec:
    model: type
    label: str
    code_field: str
    statuses: type[enum.Enum]
    initial_status: str
    # Plain descriptive columns; never ledgered
    fields: frozenset[str]


_KINDS = {
    EntityKind.SHIPMENT: _KindSpec(
        model=Shipment,
        label="Shipment",
        code_field="tracking_number",
        statuses=ShipmentStatus,
        initial_status=ShipmentStatus.RECEIVED.value,
        fields=frozenset({
            "description", "cbm", "quantity", "received_quantity",
            "origin_warehouse_id", "current_warehouse_id", "received_at",
        }),
    ),
    EntityKind.CONTAINER: _KindSpec(
        model=Container,
        label="Container",
        code_field="container_number",
        statuses=ContainerStatus,
        initial_status=ContainerStatus.REGISTERED.value,
        fields=frozenset({
            "size_type", "vessel_name", "departure_date", "eta",
            "arrival_date", "current_location",
        }),
    ),
}

_OWNER_KEYS = ("customer_id", "partner_id", "customer_ids", "partner_ids")

_request_adapter = TypeAdapter(UpdateRequest)


@dataclass
class UpsertResult:
    entity: Any
    created: bool


def _spec(kind: EntityKind | str) -> _KindSpec:
    return _KINDS[EntityKind(kind)]


# ── Payload decomposition ────────────────────────────────────

def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def decompose(kind: EntityKind | str, payload: dict) -> tuple[list, dict]:
    """Split a combined payload into tagged requests plus descriptive fields.

    Requests come back in apply order: claim → partner_assign → status.
    Null owner values mean "not supplied"; an explicit null
    partner_customer_id removes the owning partner's assignment.
    """
    spec = _spec(kind)
    requests: list = []

    claim = {k: payload[k] for k in _OWNER_KEYS if payload.get(k)}
    if claim:
        requests.append(ClaimRequest(**claim))

    if "partner_customer_id" in payload:
        requests.append(PartnerAssignRequest(
            partner_id=payload.get("partner_id"),
            customer_id=payload["partner_customer_id"],
        ))
    for item in payload.get("partner_assignments") or []:
        item = item.model_dump() if isinstance(item, BaseModel) else dict(item)
        requests.append(PartnerAssignRequest(
            partner_id=item.get("partner_id"), customer_id=item.get("customer_id"),
        ))

    if payload.get("status") is not None:
        requests.append(StatusUpdateRequest(status=_enum_value(payload["status"])))

    fields = {k: v for k, v in payload.items() if k in spec.fields}
    return requests, fields


def _normalize(kind: EntityKind | str, update_: Any) -> tuple[list, dict]:
    if isinstance(update_, (ClaimRequest, StatusUpdateRequest, PartnerAssignRequest)):
        requests, fields = [update_], {}
    elif isinstance(update_, (list, tuple)):
        requests = [_request_adapter.validate_python(r) for r in update_]
        fields = {}
    elif isinstance(update_, BaseModel):
        requests, fields = decompose(kind, update_.model_dump(exclude_unset=True))
    elif isinstance(update_, dict) and "kind" in update_:
        requests, fields = [_request_adapter.validate_python(update_)], {}
    elif isinstance(update_, dict):
        requests, fields = decompose(kind, update_)
    else:
        raise TypeError(f"Unsupported update payload: {type(update_).__name__}")
    requests.sort(key=lambda r: REQUEST_ORDER[r.kind])
    return requests, fields


def _validate_status(kind: EntityKind | str, status: Any) -> str:
    spec = _spec(kind)
    try:
        return spec.statuses(_enum_value(status)).value
    except ValueError:
        raise BusinessLogicError(
            f"Invalid {spec.label.lower()} status: {status}", "INVALID_STATUS"
        )


def _requested_owners(req: ClaimRequest) -> tuple[str | None, str | None]:
    customer = req.customer_id or next(iter(req.customer_ids or []), None)
    partner = req.partner_id or next(iter(req.partner_ids or []), None)
    return customer, partner


def _merged(primary: str | None, *lists: Sequence[str] | None) -> list[str]:
    """Ordered de-duplicated union with `primary` first."""
    result: list[str] = []
    for value in [primary, *[v for seq in lists for v in (seq or [])]]:
        if value and value not in result:
            result.append(value)
    return result


# ── Lookups ──────────────────────────────────────────────────

async def get_by_code(
    db: AsyncSession, tenant: str, kind: EntityKind | str, code: str,
):
    """Entity with this code visible to `tenant`, or None.

    Codes are unique per organization; the super tenant may see several
    and gets its own organization's first.
    """
    spec = _spec(kind)
    model = spec.model
    code_col = getattr(model, spec.code_field)
    result = await db.execute(
        select(model)
        .where(code_col == code, scope_for(tenant).clause(model))
        .order_by((model.organization == tenant_code(tenant)).desc(), model.created_at)
        .limit(1)
    )
    return result.scalars().first()


async def _require_by_code(db: AsyncSession, tenant: str, kind: EntityKind | str, code: str):
    entity = await get_by_code(db, tenant, kind, code)
    if entity is None:
        raise ResourceNotFoundError(_spec(kind).label, code)
    return entity


async def get_entity(
    db: AsyncSession, tenant: str, kind: EntityKind | str, entity_id: str,
):
    spec = _spec(kind)
    entity = (
        await db.execute(
            select(spec.model).where(
                spec.model.id == entity_id, scope_for(tenant).clause(spec.model)
            )
        )
    ).scalar_one_or_none()
    if entity is None:
        raise ResourceNotFoundError(spec.label, entity_id)
    return entity


async def list_entities(
    db: AsyncSession,
    tenant: str,
    kind: EntityKind | str,
    *,
    customer_id: str | None = None,
    partner_id: str | None = None,
    status: str | None = None,
    container_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list, int]:
    model = _spec(kind).model
    base = select(model).where(scope_for(tenant).clause(model))
    if customer_id:
        base = base.where(model.customer_id == customer_id)
    if partner_id:
        base = base.where(model.partner_id == partner_id)
    if status:
        base = base.where(model.status == _validate_status(kind, status))
    if container_id and model is Shipment:
        base = base.where(Shipment.container_id == container_id)

    total = (
        await db.execute(select(func.count()).select_from(base.subquery()))
    ).scalar() or 0
    result = await db.execute(
        base.order_by(model.created_at.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total


# ── Create / upsert ──────────────────────────────────────────

async def _ensure_code_free(
    db: AsyncSession, organization: str, kind: EntityKind, code: str,
) -> None:
    registered = (
        await db.execute(
            select(TrackingCode).where(
                TrackingCode.organization == organization, TrackingCode.code == code
            )
        )
    ).scalar_one_or_none()
    if registered is not None:
        raise DuplicateTrackingCodeError(code, registered.entity_type)


async def upsert_entity(
    db: AsyncSession,
    tenant: str,
    kind: EntityKind | str,
    payload: dict | BaseModel,
    *,
    actor_id: str | None = None,
    bus: StatusEventBus | None = None,
) -> UpsertResult:
    """Create an entity, or update the existing one with the same code.

    Repeating a create with an identical payload is a no-op on the
    stored entity (no ledger entry, no event).
    """
    kind = EntityKind(kind)
    spec = _spec(kind)
    data = payload.model_dump(exclude_unset=True) if isinstance(payload, BaseModel) else dict(payload)
    code = data.pop(spec.code_field, None)
    if not code:
        raise BusinessLogicError(f"{spec.code_field} is required", "CODE_REQUIRED")
    organization = tenant_code(tenant)

    code_col = getattr(spec.model, spec.code_field)
    existing = (
        await db.execute(
            select(spec.model).where(
                code_col == code, spec.model.organization == organization
            )
        )
    ).scalar_one_or_none()
    if existing is not None:
        requests, fields = _normalize(kind, data)
        entity = await _apply(
            db, kind, existing, requests, fields,
            actor_id=actor_id, source=SOURCE_STATUS_UPDATE, bus=bus,
        )
        return UpsertResult(entity=entity, created=False)

    await _ensure_code_free(db, organization, kind, code)

    requests, fields = _normalize(kind, data)
    claims = [r for r in requests if isinstance(r, ClaimRequest)]
    customer_id = partner_id = None
    for claim in claims:
        customer_id, partner_id = _requested_owners(claim)
        if customer_id and partner_id:
            raise ConflictingOwnershipError()
    statuses = [r.status for r in requests if isinstance(r, StatusUpdateRequest)]
    status = _validate_status(kind, statuses[-1]) if statuses else spec.initial_status

    entity = spec.model(organization=organization, status=status, **{spec.code_field: code}, **fields)
    entity.customer_id = customer_id
    entity.partner_id = partner_id
    entity.customer_ids = _merged(customer_id, *(c.customer_ids for c in claims))
    entity.partner_ids = _merged(partner_id, *(c.partner_ids for c in claims))
    entity.partner_assignments = []
    for req in requests:
        if isinstance(req, PartnerAssignRequest):
            _apply_partner_assignment(entity, req)
    _stamp_status_dates(kind, entity, status)

    db.add(entity)
    await db.flush()  # populate entity.id
    db.add(TrackingCode(
        organization=organization, code=code, entity_type=kind.value, entity_id=entity.id,
    ))
    await tracking_ledger.record(
        db, organization,
        entity_type=kind.value,
        entity_id=entity.id,
        tracking_code=code,
        status=status,
        metadata={"source": SOURCE_CREATED, "actor_id": actor_id},
    )
    logger.info("Created %s %s in %s (status=%s)", kind.value, code, organization, status)
    return UpsertResult(entity=entity, created=True)


async def create_entity(
    db: AsyncSession,
    tenant: str,
    kind: EntityKind | str,
    payload: dict | BaseModel,
    *,
    actor_id: str | None = None,
    bus: StatusEventBus | None = None,
):
    """Create-or-update; returns the entity.  See `upsert_entity`."""
    result = await upsert_entity(db, tenant, kind, payload, actor_id=actor_id, bus=bus)
    return result.entity


async def upsert_as_owner(
    db: AsyncSession,
    tenant: str,
    kind: EntityKind | str,
    role: CallerRole | str,
    actor_id: str,
    payload: dict | BaseModel,
    *,
    bus: StatusEventBus | None = None,
) -> UpsertResult:
    """Create-or-update on behalf of an authenticated caller.

    admin     same as `upsert_entity`
    partner   the new entity is owned by the partner itself; an existing
              code goes through the partner rules of `update_as_owner`
    customer  not allowed
    """
    kind = EntityKind(kind)
    role = CallerRole(role)
    if role is CallerRole.ADMIN:
        return await upsert_entity(db, tenant, kind, payload, actor_id=actor_id, bus=bus)
    if role is CallerRole.CUSTOMER:
        raise ForbiddenOwnerError(f"Customers cannot create a {kind.value}")

    spec = _spec(kind)
    data = payload.model_dump(exclude_unset=True) if isinstance(payload, BaseModel) else dict(payload)
    if data.get("customer_id") or data.get("customer_ids"):
        raise ForbiddenOwnerError("Partners cannot set customer_id")
    if data.get("partner_ids"):
        raise ForbiddenOwnerError("Partners cannot set partner_ids")
    if data.get("partner_id") and data["partner_id"] != actor_id:
        raise ForbiddenOwnerError("Partners cannot create on behalf of another partner")
    data["partner_id"] = actor_id

    code = data.get(spec.code_field)
    existing = (
        await db.execute(
            select(spec.model).where(
                getattr(spec.model, spec.code_field) == code,
                spec.model.organization == tenant_code(tenant),
            )
        )
    ).scalar_one_or_none() if code else None
    if existing is not None:
        data.pop(spec.code_field)
        entity = await update_as_owner(
            db, tenant, kind, code, role, actor_id, data, bus=bus,
        )
        return UpsertResult(entity=entity, created=False)
    return await upsert_entity(db, tenant, kind, data, actor_id=actor_id, bus=bus)


# ── Updates ──────────────────────────────────────────────────

async def claim_or_update(
    db: AsyncSession,
    tenant: str,
    kind: EntityKind | str,
    code: str,
    update_: Any,
    *,
    actor_id: str | None = None,
    source: str = SOURCE_STATUS_UPDATE,
    bus: StatusEventBus | None = None,
):
    """Apply an admin update (combined payload or tagged request(s)) by code."""
    entity = await _require_by_code(db, tenant, kind, code)
    requests, fields = _normalize(kind, update_)
    return await _apply(
        db, EntityKind(kind), entity, requests, fields,
        actor_id=actor_id, source=source, bus=bus,
    )


async def apply_update(
    db: AsyncSession,
    tenant: str,
    kind: EntityKind | str,
    code: str,
    request: UpdateRequest | dict,
    *,
    actor_id: str | None = None,
    source: str = SOURCE_STATUS_UPDATE,
    bus: StatusEventBus | None = None,
):
    """Apply exactly one tagged request."""
    if isinstance(request, dict):
        request = _request_adapter.validate_python(request)
    return await claim_or_update(
        db, tenant, kind, code, request, actor_id=actor_id, source=source, bus=bus,
    )


async def claim_by_id(
    db: AsyncSession,
    tenant: str,
    kind: EntityKind | str,
    entity_id: str,
    request: ClaimRequest,
    *,
    actor_id: str | None = None,
    bus: StatusEventBus | None = None,
):
    """Apply a claim to the entity with this id.

    Codes can repeat across organizations, so callers that already hold
    an id must not go back through `get_by_code`.
    """
    kind = EntityKind(kind)
    entity = await get_entity(db, tenant, kind, entity_id)
    return await _apply(
        db, kind, entity, [request], {},
        actor_id=actor_id, source=SOURCE_STATUS_UPDATE, bus=bus,
    )


async def update_as_owner(
    db: AsyncSession,
    tenant: str,
    kind: EntityKind | str,
    code: str,
    role: CallerRole | str,
    actor_id: str,
    update_: Any,
    *,
    bus: StatusEventBus | None = None,
):
    """Apply an update on behalf of an authenticated caller.

    admin     anything `claim_or_update` allows
    partner   must own the entity; status and its own customer assignment only
    customer  must own the entity; read-only
    """
    kind = EntityKind(kind)
    role = CallerRole(role)
    entity = await _require_by_code(db, tenant, kind, code)
    requests, fields = _normalize(kind, update_)

    if role is CallerRole.ADMIN:
        return await _apply(
            db, kind, entity, requests, fields,
            actor_id=actor_id, source=SOURCE_STATUS_UPDATE, bus=bus,
        )

    if role is CallerRole.CUSTOMER:
        if entity.effective_customer_id != actor_id:
            raise ForbiddenOwnerError()
        if requests or fields:
            raise ForbiddenOwnerError(f"Customers cannot modify a {kind.value}")
        return entity

    if entity.effective_partner_id != actor_id:
        raise ForbiddenOwnerError()
    if fields:
        raise ForbiddenOwnerError(f"Partners cannot change {', '.join(sorted(fields))}")

    allowed: list = []
    for req in requests:
        if isinstance(req, ClaimRequest):
            if req.customer_id or req.customer_ids:
                raise ForbiddenOwnerError("Partners cannot set customer_id")
            if req.partner_ids:
                raise ForbiddenOwnerError("Partners cannot set partner_ids")
            if req.partner_id and req.partner_id != actor_id:
                raise ForbiddenOwnerError("Partners cannot reassign the owning partner")
            # Re-asserting its own partner_id changes nothing
        elif isinstance(req, PartnerAssignRequest):
            if req.partner_id and req.partner_id != actor_id:
                raise ForbiddenOwnerError("Cannot assign customers on behalf of another partner")
            allowed.append(PartnerAssignRequest(partner_id=actor_id, customer_id=req.customer_id))
        else:
            allowed.append(req)

    return await _apply(
        db, kind, entity, allowed, {},
        actor_id=actor_id, source=SOURCE_STATUS_UPDATE, bus=bus,
    )


async def _apply(
    db: AsyncSession,
    kind: EntityKind,
    entity,
    requests: list,
    fields: dict,
    *,
    actor_id: str | None,
    source: str,
    bus: StatusEventBus | None,
):
    # Validate before mutating anything
    new_status = None
    for req in requests:
        if isinstance(req, StatusUpdateRequest):
            new_status = _validate_status(kind, req.status)

    for req in requests:
        if isinstance(req, ClaimRequest):
            await _apply_claim(db, kind, entity, req)
        elif isinstance(req, PartnerAssignRequest):
            _apply_partner_assignment(entity, req)

    for key, value in fields.items():
        if getattr(entity, key) != value:
            setattr(entity, key, value)

    previous_status = entity.status
    status_changed = new_status is not None and new_status != previous_status
    if status_changed:
        entity.status = new_status
        _stamp_status_dates(kind, entity, new_status)

    await db.flush()

    if status_changed:
        code = entity.code
        await tracking_ledger.record(
            db, entity.organization,
            entity_type=kind.value,
            entity_id=entity.id,
            tracking_code=code,
            status=new_status,
            metadata={
                "source": source,
                "actor_id": actor_id,
                "previous_status": previous_status,
            },
        )
        snapshot = await enrich_snapshot(db, snapshot_of(entity))
        publish_after_commit(
            db,
            StatusChangedEvent(
                entity_type=kind.value,
                organization=entity.organization,
                snapshot=snapshot,
                previous_status=previous_status,
            ),
            bus,
        )
        logger.info(
            "%s %s status %s → %s (source=%s)",
            kind.value, code, previous_status, new_status, source,
        )
    return entity


async def _claim_atomically(
    db: AsyncSession,
    model: type,
    entity,
    *,
    customer_id: str | None,
    partner_id: str | None,
) -> bool:
    """Set the owner only if both owner columns are still NULL in the row."""
    values = {"customer_id": customer_id} if customer_id else {"partner_id": partner_id}
    result = await db.execute(
        update(model)
        .where(
            model.id == entity.id,
            model.customer_id.is_(None),
            model.partner_id.is_(None),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(entity)
    return result.rowcount == 1


async def _apply_claim(db: AsyncSession, kind: EntityKind, entity, req: ClaimRequest) -> None:
    customer, partner = _requested_owners(req)
    if customer and partner:
        raise ConflictingOwnershipError()

    current_customer = entity.effective_customer_id
    current_partner = entity.effective_partner_id

    if customer:
        if current_partner:
            raise PartnerOwnsAssignmentError(current_partner)
        if current_customer and current_customer != customer:
            raise OwnershipLockedError("customer_id", current_customer)
    if partner:
        if current_customer:
            raise ConflictingOwnershipError(
                f"Assigned to customer {current_customer}; a partner cannot also be assigned"
            )
        if current_partner and current_partner != partner:
            raise OwnershipLockedError("partner_id", current_partner)

    if (customer or partner) and not current_customer and not current_partner:
        won = await _claim_atomically(
            db, _spec(kind).model, entity, customer_id=customer, partner_id=partner,
        )
        if not won:
            logger.info("Lost ownership race on %s %s; re-checking", kind.value, entity.code)
            return await _apply_claim(db, kind, entity, req)
    elif customer and not entity.customer_id:
        # Owned through the legacy list only; promote to the scalar
        entity.customer_id = customer
    elif partner and not entity.partner_id:
        entity.partner_id = partner

    customer_ids = _merged(entity.customer_id, entity.customer_ids, req.customer_ids)
    if customer_ids != list(entity.customer_ids or []):
        entity.customer_ids = customer_ids
    partner_ids = _merged(entity.partner_id, entity.partner_ids, req.partner_ids)
    if partner_ids != list(entity.partner_ids or []):
        entity.partner_ids = partner_ids


def _apply_partner_assignment(entity, req: PartnerAssignRequest) -> None:
    owner = entity.effective_partner_id
    if not owner and req.customer_id is None and req.partner_id is None:
        return  # removing from an entity no partner owns
    if not owner:
        raise BusinessLogicError(
            "A partner must own the entity before assigning its customer", "PARTNER_REQUIRED"
        )
    if req.partner_id and req.partner_id != owner:
        raise OwnershipLockedError("partner_id", owner)

    current = [dict(a) for a in entity.partner_assignments or []]
    assignments: list[dict] = []
    found = False
    for item in current:
        if item.get("partner_id") != owner:
            assignments.append(item)
            continue
        if found:
            continue  # collapse duplicates left by older writers
        found = True
        if req.customer_id:
            assignments.append({"partner_id": owner, "customer_id": req.customer_id})
    if not found and req.customer_id:
        assignments.append({"partner_id": owner, "customer_id": req.customer_id})

    if assignments != current:
        entity.partner_assignments = assignments
    mirror = assignments[0]["customer_id"] if assignments else None
    if entity.partner_customer_id != mirror:
        entity.partner_customer_id = mirror


def _stamp_status_dates(kind: EntityKind, entity, status: str) -> None:
    now = datetime.utcnow()
    if kind is EntityKind.SHIPMENT:
        if status.startswith("delivered") and entity.delivered_at is None:
            entity.delivered_at = now
    elif status == ContainerStatus.ARRIVED.value and entity.arrival_date is None:
        entity.arrival_date = now


# ── Delete ───────────────────────────────────────────────────

async def delete_entity(
    db: AsyncSession, tenant: str, kind: EntityKind | str, entity_id: str,
):
    """Delete an entity and return it; its ledger entries are kept, its code is released."""
    kind = EntityKind(kind)
    entity = await get_entity(db, tenant, kind, entity_id)

    if kind is EntityKind.CONTAINER:
        dependents = (
            await db.execute(
                select(func.count(Shipment.id)).where(Shipment.container_id == entity.id)
            )
        ).scalar() or 0
        if dependents:
            raise HasDependentsError("container", dependents)

    await db.execute(
        delete(TrackingCode).where(
            TrackingCode.organization == entity.organization,
            TrackingCode.code == entity.code,
        )
    )
    await db.delete(entity)
    await db.flush()
    logger.info("Deleted %s %s in %s", kind.value, entity.code, entity.organization)
    return entity


# ── Containers ───────────────────────────────────────────────

async def load_shipments(
    db: AsyncSession,
    tenant: str,
    container_id: str,
    shipment_ids: list[str],
    *,
    actor_id: str | None = None,
    bus: StatusEventBus | None = None,
) -> list[Shipment]:
    """Attach shipments to a container and move each to `loaded`."""
    container = await get_entity(db, tenant, EntityKind.CONTAINER, container_id)
    result = await db.execute(
        select(Shipment).where(
            Shipment.id.in_(shipment_ids),
            Shipment.organization == container.organization,
            scope_for(tenant).clause(Shipment),
        )
    )
    by_id = {s.id: s for s in result.scalars().all()}
    missing = [sid for sid in shipment_ids if sid not in by_id]
    if missing:
        raise ResourceNotFoundError("Shipment", ", ".join(missing))

    loaded: list[Shipment] = []
    for sid in dict.fromkeys(shipment_ids):
        shipment = by_id[sid]
        if shipment.container_id != container.id:
            shipment.container_id = container.id
        await _apply(
            db, EntityKind.SHIPMENT, shipment,
            [StatusUpdateRequest(status=ShipmentStatus.LOADED.value)], {},
            actor_id=actor_id, source=SOURCE_CONTAINER_LOAD, bus=bus,
        )
        loaded.append(shipment)
    logger.info("Loaded %d shipments into container %s", len(loaded), container.container_number)
    return loaded


async def container_shipments(
    db: AsyncSession, tenant: str, container_id: str,
) -> list[Shipment]:
    container = await get_entity(db, tenant, EntityKind.CONTAINER, container_id)
    result = await db.execute(
        select(Shipment)
        .where(Shipment.container_id == container.id, scope_for(tenant).clause(Shipment))
        .order_by(Shipment.created_at)
    )
    return list(result.scalars().all())


async def active_containers(db: AsyncSession, tenant: str) -> list[Container]:
    """Containers currently loading, loaded or in transit."""
    result = await db.execute(
        select(Container)
        .where(
            Container.status.in_(ACTIVE_CONTAINER_STATUSES),
            scope_for(tenant).clause(Container),
        )
        .order_by(Container.created_at.desc())
    )
    return list(result.scalars().all())


# ── Tracking lookup ──────────────────────────────────────────

async def track(db: AsyncSession, tenant: str, code: str) -> dict:
    """Resolve a public tracking code: shipments first, then containers.

    Returns {"type": "shipment"|"container"|"unknown", "entity", "timeline"}.
    """
    for kind in (EntityKind.SHIPMENT, EntityKind.CONTAINER):
        entity = await get_by_code(db, tenant, kind, code)
        if entity is not None:
            entries = await tracking_ledger.timeline(db, code, tenant=entity.organization)
            return {"type": kind.value, "entity": entity, "timeline": entries}
    return {
        "type": "unknown",
        "entity": None,
        "timeline": await tracking_ledger.timeline(db, code, tenant=tenant),
    }
