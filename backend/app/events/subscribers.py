"""Status-change subscribers: in-app notifications, SMS, tracking cache.

Each subscriber opens its own session, commits its own writes, and logs
and swallows its own failures so the other subscribers are unaffected.
"""

import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.database import async_session
from app.events.bus import StatusEventBus
from app.events.status_events import StatusChangedEvent
from app.models.notification import NotificationRecipientType
from app.services.notifications import NotificationStore
from app.services.sms import SmsTemplateResolver, SmsTransport, company_name
from app.utils.cache import invalidate_tracking

logger = logging.getLogger("freightlink.events")


class NotificationSubscriber:
    name = "notifications"

    def __init__(self, session_factory: async_sessionmaker = async_session, store: NotificationStore | None = None):
        self.session_factory = session_factory
        self.store = store or NotificationStore()

    async def __call__(self, evt: StatusChangedEvent) -> None:
        if not evt.customer_id and not evt.partner_id:
            return
        label = evt.entity_type.capitalize()
        code = evt.tracking_code
        metadata = {f"{evt.entity_type}_id": evt.entity_id, "tracking_number": code}
        try:
            async with self.session_factory() as db:
                if evt.customer_id:
                    await self.store.create(
                        db, evt.organization,
                        recipient_id=evt.customer_id,
                        recipient_kind=NotificationRecipientType.CUSTOMER.value,
                        title=f"{label} Status Updated",
                        message=(
                            f"Your {evt.entity_type} {code} has been updated "
                            f"from {evt.previous_status} to {evt.status}."
                        ),
                        metadata=metadata,
                    )
                if evt.partner_id:
                    await self.store.create(
                        db, evt.organization,
                        recipient_id=evt.partner_id,
                        recipient_kind=NotificationRecipientType.PARTNER.value,
                        title=f"{label} Status Updated",
                        message=(
                            f"{label} {code} assigned to you has been updated "
                            f"from {evt.previous_status} to {evt.status}."
                        ),
                        metadata=metadata,
                    )
                await db.commit()
        except Exception:
            logger.exception("Failed to create notifications for %s %s", evt.entity_type, code)


class SmsSubscriber:
    name = "sms"

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session,
        resolver: SmsTemplateResolver | None = None,
        transport: SmsTransport | None = None,
    ):
        self.session_factory = session_factory
        self.resolver = resolver or SmsTemplateResolver()
        self.transport = transport or SmsTransport()

    async def __call__(self, evt: StatusChangedEvent) -> None:
        if evt.entity_type != "shipment":
            return
        code = evt.tracking_code
        customer = evt.snapshot.get("customer")
        if not customer:
            logger.debug("No customer on shipment %s, skipping SMS", code)
            return
        if not customer.get("phone"):
            logger.warning("Customer %s has no phone number, skipping SMS", customer.get("id"))
            return

        try:
            async with self.session_factory() as db:
                template = await self.resolver.find_by_status(
                    db, evt.status, evt.organization, partner_id=evt.partner_id,
                )
            if not template:
                logger.warning(
                    "No SMS template for status %s in organization %s", evt.status, evt.organization
                )
                return
            text = self.resolver.render(template, {
                "customerName": customer.get("name"),
                "trackingNumber": code,
                "companyName": company_name(evt.organization),
                "status": evt.status,
            })
            await self.transport.send(customer["phone"], text)
        except Exception:
            logger.exception("Failed to send SMS for shipment %s", code)


class TrackingCacheSubscriber:
    name = "tracking_cache"

    async def __call__(self, evt: StatusChangedEvent) -> None:
        try:
            await invalidate_tracking(evt.organization, evt.tracking_code)
        except Exception:
            logger.exception("Failed to invalidate tracking cache for %s", evt.tracking_code)


def register_default_subscribers(
    bus: StatusEventBus,
    session_factory: async_sessionmaker = async_session,
) -> StatusEventBus:
    bus.subscribe(NotificationSubscriber(session_factory))
    bus.subscribe(SmsSubscriber(session_factory))
    bus.subscribe(TrackingCacheSubscriber())
    return bus
