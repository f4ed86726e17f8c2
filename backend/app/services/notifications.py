"""In-app notification store for customers and partners."""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import ResourceNotFoundError
from app.models.notification import Notification, NotificationType
from app.tenancy import scope_for, tenant_code


class NotificationStore:
    """Persists notifications in the caller's session; the caller commits."""

    async def create(
        self,
        db: AsyncSession,
        tenant: str,
        *,
        recipient_id: str,
        recipient_kind: str,
        title: str,
        message: str,
        type: str = NotificationType.INFO.value,
        metadata: dict | None = None,
    ) -> Notification:
        notification = Notification(
            organization=tenant_code(tenant),
            recipient_id=recipient_id,
            recipient_type=recipient_kind,
            title=title,
            message=message,
            type=type,
            meta=metadata,
        )
        db.add(notification)
        await db.flush()
        return notification

    async def list_for_recipient(
        self,
        db: AsyncSession,
        tenant: str,
        recipient_id: str,
        recipient_kind: str,
        *,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Notification], int]:
        base = select(Notification).where(
            scope_for(tenant).clause(Notification),
            Notification.recipient_id == recipient_id,
            Notification.recipient_type == recipient_kind,
        )
        if unread_only:
            base = base.where(Notification.read == False)  # noqa: E712

        total = (
            await db.execute(select(func.count()).select_from(base.subquery()))
        ).scalar() or 0
        result = await db.execute(
            base.order_by(Notification.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total

    async def unread_count(
        self, db: AsyncSession, tenant: str, recipient_id: str, recipient_kind: str,
    ) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                scope_for(tenant).clause(Notification),
                Notification.recipient_id == recipient_id,
                Notification.recipient_type == recipient_kind,
                Notification.read == False,  # noqa: E712
            )
        )
        return result.scalar() or 0

    async def mark_read(
        self,
        db: AsyncSession,
        tenant: str,
        notification_id: str,
        recipient_id: str,
    ) -> Notification:
        notification = (
            await db.execute(
                select(Notification).where(
                    Notification.id == notification_id,
                    Notification.recipient_id == recipient_id,
                    scope_for(tenant).clause(Notification),
                )
            )
        ).scalar_one_or_none()
        if not notification:
            raise ResourceNotFoundError("Notification", notification_id)
        notification.read = True
        await db.flush()
        return notification

    async def mark_all_read(
        self, db: AsyncSession, tenant: str, recipient_id: str, recipient_kind: str,
    ) -> int:
        result = await db.execute(
            update(Notification)
            .where(
                scope_for(tenant).clause(Notification),
                Notification.recipient_id == recipient_id,
                Notification.recipient_type == recipient_kind,
                Notification.read == False,  # noqa: E712
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


notification_store = NotificationStore()
