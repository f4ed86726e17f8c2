"""Status-triggered SMS: template resolution, rendering and Twilio transport.

Template lookup for a shipment status:
  1. active template owned by the shipment's partner whose status_mapping
     contains the status
  2. otherwise the tenant's active default template for that status

Rendering replaces {{name}} placeholders; unknown placeholders are left
in place so a missing variable is visible in the delivered text.
"""

import asyncio
import logging
import re

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.shipment import ShipmentStatus
from app.models.sms_template import SmsTemplate
from app.tenancy import tenant_code

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


# ── Default templates (seeded per tenant via the CLI) ────────
DEFAULT_TEMPLATES = [
    {
        "name": "shipment_received",
        "title": "Shipment received",
        "content": "Hello {{customerName}}, your shipment {{trackingNumber}} has been received at our warehouse. - {{companyName}}",
        "status_mapping": [ShipmentStatus.RECEIVED.value, ShipmentStatus.RECEIVED_CHINA.value],
    },
    {
        "name": "shipment_loaded",
        "title": "Shipment loaded",
        "content": "Hello {{customerName}}, your shipment {{trackingNumber}} has been loaded into a container. - {{companyName}}",
        "status_mapping": [ShipmentStatus.LOADED.value, ShipmentStatus.LOADED_CHINA.value],
    },
    {
        "name": "shipment_in_transit",
        "title": "Shipment in transit",
        "content": "Hello {{customerName}}, your shipment {{trackingNumber}} is on its way to Ghana. - {{companyName}}",
        "status_mapping": [ShipmentStatus.IN_TRANSIT.value],
    },
    {
        "name": "shipment_arrived",
        "title": "Shipment arrived",
        "content": "Hello {{customerName}}, your shipment {{trackingNumber}} has arrived in Ghana. - {{companyName}}",
        "status_mapping": [
            ShipmentStatus.ARRIVED_GHANA.value,
            ShipmentStatus.RECEIVED_ACCRA.value,
            ShipmentStatus.RECEIVED_KUMASI.value,
            ShipmentStatus.RECEIVED_NKORANZA.value,
        ],
    },
    {
        "name": "shipment_dispatched",
        "title": "Shipment dispatched",
        "content": "Hello {{customerName}}, your shipment {{trackingNumber}} has been dispatched to your regional hub. - {{companyName}}",
        "status_mapping": [
            ShipmentStatus.DISPATCHED_KUMASI.value,
            ShipmentStatus.DISPATCHED_NKORANZA.value,
        ],
    },
    {
        "name": "shipment_delivered",
        "title": "Shipment delivered",
        "content": "Hello {{customerName}}, your shipment {{trackingNumber}} has been delivered. Thank you for shipping with {{companyName}}.",
        "status_mapping": [
            ShipmentStatus.DELIVERED.value,
            ShipmentStatus.DELIVERED_ACCRA.value,
            ShipmentStatus.DELIVERED_KUMASI.value,
            ShipmentStatus.DELIVERED_NKORANZA.value,
        ],
    },
]


def company_name(tenant: str) -> str:
    return tenant_code(tenant).capitalize()


class SmsTemplateResolver:

    async def find_by_status(
        self,
        db: AsyncSession,
        status: str,
        tenant: str,
        partner_id: str | None = None,
    ) -> SmsTemplate | None:
        # Exact organization match: a super-tenant shipment uses its own templates
        stmt = select(SmsTemplate).where(
            SmsTemplate.organization == tenant_code(tenant),
            SmsTemplate.is_active == True,  # noqa: E712
        ).order_by(SmsTemplate.created_at)
        # status_mapping is a JSON list; match in Python to stay backend-neutral
        candidates = [
            t for t in (await db.execute(stmt)).scalars().all()
            if status in (t.status_mapping or [])
        ]

        if partner_id:
            for template in candidates:
                if template.partner_id == partner_id:
                    return template

        for template in candidates:
            if template.is_default:
                return template
        return None

    @staticmethod
    def render(template: SmsTemplate | str, variables: dict) -> str:
        content = template if isinstance(template, str) else template.content

        def _sub(match: re.Match) -> str:
            value = variables.get(match.group(1))
            return match.group(0) if value is None else str(value)

        return _PLACEHOLDER.sub(_sub, content)

    async def seed_defaults(self, db: AsyncSession, tenant: str) -> int:
        """Insert the default templates a tenant does not have yet."""
        org = tenant_code(tenant)
        existing = set(
            (
                await db.execute(
                    select(SmsTemplate.name).where(
                        SmsTemplate.organization == org,
                        SmsTemplate.is_default == True,  # noqa: E712
                    )
                )
            ).scalars().all()
        )
        created = 0
        for defaults in DEFAULT_TEMPLATES:
            if defaults["name"] in existing:
                continue
            db.add(SmsTemplate(organization=org, is_default=True, is_active=True, **defaults))
            created += 1
        await db.flush()
        return created


class SmsTransport:
    """Twilio REST transport.  Sends are skipped when credentials are unset."""

    def __init__(self, account_sid: str = "", auth_token: str = "", from_number: str = ""):
        self.account_sid = account_sid or settings.twilio_account_sid
        self.auth_token = auth_token or settings.twilio_auth_token
        self.from_number = from_number or settings.twilio_from_number

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def _send_sync(self, phone: str, message: str) -> str:
        from twilio.rest import Client
        client = Client(self.account_sid, self.auth_token)
        sent = client.messages.create(body=message, from_=self.from_number, to=phone)
        return sent.sid

    async def send(self, phone: str, message: str) -> bool:
        if not self.configured:
            logger.info("Twilio not configured, skipping SMS to %s", phone)
            return False
        try:
            sid = await asyncio.to_thread(self._send_sync, phone, message)
        except Exception:
            logger.exception("SMS to %s failed", phone)
            return False
        logger.info("SMS sent to %s (sid=%s)", phone, sid)
        return True
