"""Management CLI for tenant operations.

Usage:
    python -m app.cli list-tenants                         # Configured tenants + row counts
    python -m app.cli seed-sms-templates <organization>    # Insert default SMS templates
    python -m app.cli issue-token <sub> <role> <organization>
"""

import asyncio
import sys

from sqlalchemy import create_engine, func, select

from app.auth.jwt import create_access_token
from app.config import settings
from app.database import async_session
from app.models.container import Container
from app.models.shipment import Shipment
from app.services.assignment import CallerRole
from app.services.sms import SmsTemplateResolver
from app.tenancy import is_super_tenant, validate_tenant


def tenant_counts() -> dict[str, tuple[int, int]]:
    engine = create_engine(settings.database_url_sync)
    counts: dict[str, tuple[int, int]] = {}
    with engine.connect() as conn:
        for tenant in settings.tenant_codes:
            shipments = conn.execute(
                select(func.count(Shipment.id)).where(Shipment.organization == tenant)
            ).scalar() or 0
            containers = conn.execute(
                select(func.count(Container.id)).where(Container.organization == tenant)
            ).scalar() or 0
            counts[tenant] = (shipments, containers)
    engine.dispose()
    return counts


def list_tenants():
    counts = tenant_counts()
    for tenant, (shipments, containers) in counts.items():
        marker = " (super)" if is_super_tenant(tenant) else ""
        print(f"  {tenant}{marker}: {shipments} shipment(s), {containers} container(s)")
    print(f"\n{len(counts)} tenant(s)")


async def _seed_sms_templates(organization: str) -> int:
    async with async_session() as db:
        created = await SmsTemplateResolver().seed_defaults(db, organization)
        await db.commit()
    return created


def seed_sms_templates(organization: str):
    tenant = validate_tenant(organization)
    created = asyncio.run(_seed_sms_templates(tenant))
    print(f"  {created} default template(s) created for {tenant}")


def issue_token(subject: str, role: str, organization: str):
    token = create_access_token(subject, CallerRole(role).value, validate_tenant(organization))
    print(token)


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    args = sys.argv[2:]
    if cmd == "list-tenants":
        list_tenants()
    elif cmd == "seed-sms-templates" and len(args) == 1:
        seed_sms_templates(args[0])
    elif cmd == "issue-token" and len(args) == 3:
        issue_token(*args)
    else:
        print(
            "Usage: python -m app.cli "
            "[list-tenants|seed-sms-templates <org>|issue-token <sub> <role> <org>]"
        )
