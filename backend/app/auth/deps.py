"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_caller   → decode JWT, return Caller(id, role, organization)
  require_role(...)    → restrict to specific caller roles
  ensure_can_view()    → owner check for customer/partner reads
  present()            → role-specific response projection
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel

from app.auth.jwt import decode_token
from app.middleware.exceptions import ForbiddenOwnerError
from app.services.assignment import CallerRole
from app.tenancy import validate_tenant

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


@dataclass(frozen=True)
class Caller:
    id: str
    role: CallerRole
    organization: str

    @property
    def is_admin(self) -> bool:
        return self.role is CallerRole.ADMIN


# ── Core caller dependency ──────────────────────────────────

async def get_current_caller(token: str = Depends(oauth2_scheme)) -> Caller:
    """Decode the JWT and return the caller it identifies.

    The organization claim must be one of the configured tenants.
    """
    payload = decode_token(token)
    subject: str | None = payload.get("sub")
    if not subject or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        role = CallerRole(payload.get("role"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Unknown role: {payload.get('role')}",
        )
    organization = validate_tenant(payload.get("organization"))
    return Caller(id=subject, role=role, organization=organization)


# ── Role-based access control ───────────────────────────────

def require_role(*roles: CallerRole):
    """Dependency factory — restrict to one or more roles.

    Usage:
        @router.delete("/{id}")
        async def remove(caller: Caller = Depends(require_role(CallerRole.ADMIN))):
            ...
    """
    async def _check(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(r.value for r in roles)}",
            )
        return caller

    return _check


# ── Entity visibility ───────────────────────────────────────

def ensure_can_view(caller: Caller, entity) -> None:
    """Customers and partners may only read entities they own."""
    if caller.role is CallerRole.CUSTOMER and entity.effective_customer_id != caller.id:
        raise ForbiddenOwnerError()
    if caller.role is CallerRole.PARTNER and entity.effective_partner_id != caller.id:
        raise ForbiddenOwnerError()


def present(caller: Caller, schema: type[BaseModel], entity) -> BaseModel:
    """Serialize `entity` the way `caller` should see it.

    Partners see the customer they assigned themselves, never the one an
    admin assigned.
    """
    out = schema.model_validate(entity)
    if caller.role is not CallerRole.PARTNER:
        return out
    own_customer = out.partner_customer_id
    return out.model_copy(update={
        "customer_id": own_customer,
        "customer_ids": [own_customer] if own_customer else [],
    })
