"""In-app notifications for the calling customer, partner or staff user.

Endpoints:
    GET   /api/notifications/                     List (newest first)
    GET   /api/notifications/unread-count         Unread badge count
    POST  /api/notifications/{id}/read            Mark one as read
    POST  /api/notifications/read-all             Mark all as read
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import Caller, get_current_caller
from app.database import get_db
from app.models.notification import NotificationRecipientType
from app.schemas.common import PaginatedResponse
from app.schemas.notification import NotificationOut, UnreadCount
from app.services.assignment import CallerRole
from app.services.notifications import notification_store

router = APIRouter()

_RECIPIENT_KIND = {
    CallerRole.ADMIN: NotificationRecipientType.USER.value,
    CallerRole.PARTNER: NotificationRecipientType.PARTNER.value,
    CallerRole.CUSTOMER: NotificationRecipientType.CUSTOMER.value,
}


@router.get("/", response_model=PaginatedResponse[NotificationOut])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    items, total = await notification_store.list_for_recipient(
        db, caller.organization, caller.id, _RECIPIENT_KIND[caller.role],
        unread_only=unread_only, limit=limit, offset=offset,
    )
    return PaginatedResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    count = await notification_store.unread_count(
        db, caller.organization, caller.id, _RECIPIENT_KIND[caller.role],
    )
    return UnreadCount(unread=count)


@router.post("/read-all")
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    updated = await notification_store.mark_all_read(
        db, caller.organization, caller.id, _RECIPIENT_KIND[caller.role],
    )
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    return await notification_store.mark_read(db, caller.organization, notification_id, caller.id)
