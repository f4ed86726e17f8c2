"""Multi-tenancy: row-level isolation on the `organization` column.

Key components:
  - Organization        closed set of tenant codes known to the platform
  - scope_for()         tenant code → TenantScope (query predicate)
  - is_super_tenant()   True for the tenant that bypasses filtering
  - validate_tenant()   rejects codes outside the configured tenant set

The super tenant sees every organization's rows. This is a deliberate
platform-operator escape hatch, not an accident of the filter.
"""

import enum
from dataclasses import dataclass

from sqlalchemy import true
from sqlalchemy.sql.elements import ColumnElement

from app.config import settings


class Organization(str, enum.Enum):
    SKYLINE = "skyline"
    SKYRAK = "skyrak"


def tenant_code(tenant: str) -> str:
    """Plain string code for a tenant given as str or Organization."""
    if isinstance(tenant, enum.Enum):
        return tenant.value
    return tenant


def is_super_tenant(tenant: str) -> bool:
    return tenant_code(tenant) == settings.super_tenant


@dataclass(frozen=True)
class TenantScope:
    """Data-scope predicate derived from a tenant code.

    `tenant is None` means "match anything" (super tenant).
    """

    tenant: str | None

    @property
    def unrestricted(self) -> bool:
        return self.tenant is None

    def clause(self, model) -> ColumnElement[bool]:
        """SQL predicate for `model`, which must have an `organization` column."""
        if self.tenant is None:
            return true()
        return model.organization == self.tenant

    def matches(self, organization: str) -> bool:
        return self.tenant is None or organization == self.tenant


def scope_for(tenant: str) -> TenantScope:
    if is_super_tenant(tenant):
        return TenantScope(tenant=None)
    return TenantScope(tenant=tenant_code(tenant))


def validate_tenant(tenant: str | None) -> str:
    """Return the tenant code or raise if it is not a configured tenant."""
    from app.middleware.exceptions import TenantContextError  # deferred to avoid circular

    code = tenant_code(tenant) if tenant else None
    if not code or code not in settings.tenant_codes:
        raise TenantContextError(f"Unknown organization: {tenant!r}")
    return code
