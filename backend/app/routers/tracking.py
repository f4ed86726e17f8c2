"""Tracking router.

Endpoints:
    GET   /api/tracking/containers/active   Containers loading, loaded or in transit
    GET   /api/tracking/{code}              Resolve a code to shipment/container + timeline
    GET   /api/tracking/{code}/qr           QR label (SVG) for a code
    POST  /api/tracking/webhook             Carrier status events
"""

import io
import json
import logging

import segno
from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import Caller, get_current_caller
from app.config import settings
from app.database import get_db
from app.middleware.exceptions import BusinessLogicError
from app.schemas.container import ContainerOut, ContainerUpdate
from app.schemas.shipment import ShipmentOut, ShipmentUpdate
from app.schemas.tracking import TimelineEntry, TrackResponse, WebhookPayload
from app.services import assignment
from app.services.assignment import SOURCE_WEBHOOK, EntityKind
from app.tenancy import validate_tenant
from app.utils.cache import cached

logger = logging.getLogger(__name__)

router = APIRouter()

_ENTITY_SCHEMAS = {"shipment": ShipmentOut, "container": ContainerOut}
_UPDATE_SCHEMAS = {EntityKind.SHIPMENT: ShipmentUpdate, EntityKind.CONTAINER: ContainerUpdate}


@cached(prefix="tracking", key_builder=lambda **kw: kw["code"])
async def lookup_tracking(db: AsyncSession, *, tenant: str, code: str) -> dict:
    """JSON form of `assignment.track`; cached per tenant and code."""
    result = await assignment.track(db, tenant, code)
    entity = result["entity"]
    return TrackResponse(
        type=result["type"],
        entity=(
            _ENTITY_SCHEMAS[result["type"]].model_validate(entity).model_dump(mode="json")
            if entity is not None else None
        ),
        timeline=[TimelineEntry.model_validate(e) for e in result["timeline"]],
    ).model_dump(mode="json")


@router.get("/containers/active", response_model=list[ContainerOut])
async def list_active_containers(
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    return await assignment.active_containers(db, caller.organization)


@router.get("/{code}", response_model=TrackResponse)
async def track_code(
    code: str,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    return await lookup_tracking(db, tenant=caller.organization, code=code)


@router.get("/{code}/qr")
async def tracking_qr(
    code: str,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    """Return an SVG QR label encoding the tracking code."""
    result = await assignment.track(db, caller.organization, code)
    entity = result["entity"]
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Unknown tracking code: {code}")

    qr_data = json.dumps({
        "type": result["type"],
        "code": code,
        "organization": entity.organization,
        "status": entity.status,
    }, separators=(",", ":"))

    qr = segno.make(qr_data)
    buf = io.BytesIO()
    qr.save(buf, kind="svg", scale=4, dark="#1e3a8a")
    return Response(content=buf.getvalue(), media_type="image/svg+xml")


@router.post("/webhook")
async def carrier_webhook(
    body: WebhookPayload,
    db: AsyncSession = Depends(get_db),
    x_webhook_secret: str | None = Header(None),
):
    """Apply a carrier event as an update to the shipment or container."""
    if settings.webhook_secret and x_webhook_secret != settings.webhook_secret:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")

    tenant = validate_tenant(body.organization)
    if body.tracking_number:
        kind, code = EntityKind.SHIPMENT, body.tracking_number
    elif body.container_number:
        kind, code = EntityKind.CONTAINER, body.container_number
    else:
        raise BusinessLogicError(
            "Webhook needs a tracking_number or container_number", "CODE_REQUIRED"
        )

    logger.info("Webhook %s for %s %s (%s)", body.event, kind.value, code, tenant)
    # Parse through the update schema so dates and statuses are typed
    update_ = _UPDATE_SCHEMAS[kind].model_validate(body.data)
    entity = await assignment.claim_or_update(
        db, tenant, kind, code, update_, source=SOURCE_WEBHOOK,
    )
    return {"status": "ok", "type": kind.value, "id": entity.id, "entity_status": entity.status}
