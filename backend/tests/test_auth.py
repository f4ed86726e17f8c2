"""Tests for token handling and caller dependencies."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from jose import jwt

from app.auth.deps import Caller, ensure_can_view, get_current_caller, present, require_role
from app.auth.jwt import create_access_token, decode_token
from app.config import settings
from app.middleware import exceptions
from app.middleware.exceptions import ForbiddenOwnerError, TenantContextError
from app.models.shipment import Shipment
from app.schemas.shipment import ShipmentOut
from app.services.assignment import CallerRole


@pytest.mark.unit
class TestTokens:

    def test_round_trip_claims(self):
        payload = decode_token(create_access_token("p-1", "partner", "skyrak"))
        assert payload["sub"] == "p-1"
        assert payload["role"] == "partner"
        assert payload["organization"] == "skyrak"
        assert payload["type"] == "access"

    def test_expired_token_decodes_empty(self):
        token = create_access_token("p-1", "partner", "skyrak", expires_delta=timedelta(seconds=-1))
        assert decode_token(token) == {}

    def test_wrong_key_decodes_empty(self):
        token = jwt.encode({"sub": "x"}, "not-the-key", algorithm=settings.jwt_algorithm)
        assert decode_token(token) == {}


class TestCurrentCaller:

    async def test_valid_token(self):
        caller = await get_current_caller(create_access_token("c-1", "customer", "skyrak"))
        assert caller == Caller(id="c-1", role=CallerRole.CUSTOMER, organization="skyrak")
        assert not caller.is_admin

    async def test_garbage_token_is_401(self):
        with pytest.raises(HTTPException) as exc:
            await get_current_caller("not-a-token")
        assert exc.value.status_code == 401

    async def test_unknown_role_is_403(self):
        with pytest.raises(HTTPException) as exc:
            await get_current_caller(create_access_token("u-1", "superuser", "skyrak"))
        assert exc.value.status_code == 403

    async def test_unknown_organization_is_rejected(self):
        with pytest.raises(TenantContextError):
            await get_current_caller(create_access_token("u-1", "admin", "acme"))

    async def test_require_role(self):
        check = require_role(CallerRole.ADMIN)
        admin = Caller(id="a", role=CallerRole.ADMIN, organization="skyrak")
        assert await check(admin) is admin

        with pytest.raises(HTTPException) as exc:
            await check(Caller(id="p", role=CallerRole.PARTNER, organization="skyrak"))
        assert exc.value.status_code == 403


@pytest.mark.unit
class TestEnsureCanView:

    def _shipment(self, **owners):
        return Shipment(
            organization="skyrak", tracking_number="TRK-1", status="received",
            customer_ids=[], partner_ids=[], partner_assignments=[], **owners,
        )

    def test_owner_and_admin_can_view(self):
        shipment = self._shipment(customer_id="c-1")
        ensure_can_view(Caller("c-1", CallerRole.CUSTOMER, "skyrak"), shipment)
        ensure_can_view(Caller("a-1", CallerRole.ADMIN, "skyrak"), shipment)

    def test_non_owner_is_forbidden(self):
        shipment = self._shipment(partner_id="p-2")
        with pytest.raises(ForbiddenOwnerError):
            ensure_can_view(Caller("p-1", CallerRole.PARTNER, "skyrak"), shipment)
        with pytest.raises(ForbiddenOwnerError):
            ensure_can_view(Caller("c-1", CallerRole.CUSTOMER, "skyrak"), shipment)

    def test_ownership_denials_share_one_error(self):
        """Every owner-based refusal surfaces as FORBIDDEN_OWNER."""
        error = ForbiddenOwnerError()
        assert (error.status_code, error.error_code) == (403, "FORBIDDEN_OWNER")
        assert not hasattr(exceptions, "PermissionDeniedError")


@pytest.mark.unit
class TestPresent:

    def _shipment(self):
        return Shipment(
            id="s-1", organization="skyrak", tracking_number="TRK-1", status="received",
            partner_id="p-1", partner_customer_id="c-9", customer_ids=[], partner_ids=["p-1"],
            partner_assignments=[{"partner_id": "p-1", "customer_id": "c-9"}],
            created_at=datetime(2026, 1, 5, tzinfo=timezone.utc),
        )

    def test_partner_sees_own_customer(self):
        out = present(Caller("p-1", CallerRole.PARTNER, "skyrak"), ShipmentOut, self._shipment())
        assert out.customer_id == "c-9"
        assert out.customer_ids == ["c-9"]

    def test_admin_sees_stored_owners(self):
        out = present(Caller("a-1", CallerRole.ADMIN, "skyrak"), ShipmentOut, self._shipment())
        assert out.customer_id is None
        assert out.customer_ids == []
        assert out.partner_customer_id == "c-9"
