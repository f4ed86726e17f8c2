"""SMS template resolution, rendering and transport."""

import pytest

from app.models.sms_template import SmsTemplate
from app.services.sms import DEFAULT_TEMPLATES, SmsTemplateResolver, SmsTransport, company_name


def _template(name, statuses, organization="skyrak", **kwargs):
    return SmsTemplate(
        organization=organization, name=name, title=name,
        content=f"[{name}] {{{{trackingNumber}}}}", status_mapping=statuses, **kwargs,
    )


class TestTemplateResolution:

    async def test_partner_template_wins(self, db_session):
        db_session.add_all([
            _template("default", ["in_transit"], is_default=True),
            _template("partner", ["in_transit"], partner_id="p-1"),
        ])
        await db_session.commit()

        resolver = SmsTemplateResolver()
        found = await resolver.find_by_status(db_session, "in_transit", "skyrak", partner_id="p-1")
        assert found.name == "partner"

    async def test_falls_back_to_default(self, db_session):
        db_session.add_all([
            _template("default", ["in_transit"], is_default=True),
            _template("partner", ["loaded"], partner_id="p-1"),
        ])
        await db_session.commit()

        resolver = SmsTemplateResolver()
        found = await resolver.find_by_status(db_session, "in_transit", "skyrak", partner_id="p-1")
        assert found.name == "default"

    async def test_inactive_templates_are_ignored(self, db_session):
        db_session.add(_template("default", ["in_transit"], is_default=True, is_active=False))
        await db_session.commit()
        assert await SmsTemplateResolver().find_by_status(db_session, "in_transit", "skyrak") is None

    async def test_lookup_is_exact_organization(self, db_session):
        """The super tenant does not borrow another organization's templates."""
        db_session.add(_template("default", ["in_transit"], is_default=True))
        await db_session.commit()

        resolver = SmsTemplateResolver()
        assert await resolver.find_by_status(db_session, "in_transit", "skyline") is None
        assert await resolver.find_by_status(db_session, "in_transit", "skyrak") is not None

    async def test_seed_defaults_is_idempotent(self, db_session):
        resolver = SmsTemplateResolver()
        assert await resolver.seed_defaults(db_session, "skyrak") == len(DEFAULT_TEMPLATES)
        await db_session.commit()
        assert await resolver.seed_defaults(db_session, "skyrak") == 0

        found = await resolver.find_by_status(db_session, "delivered_kumasi", "skyrak")
        assert found.name == "shipment_delivered"


@pytest.mark.unit
class TestRendering:

    def test_render_substitutes_variables(self):
        text = SmsTemplateResolver.render(
            "Hello {{customerName}}, {{trackingNumber}} - {{companyName}}",
            {"customerName": "Ama", "trackingNumber": "TRK-1", "companyName": "Skyrak"},
        )
        assert text == "Hello Ama, TRK-1 - Skyrak"

    def test_unknown_placeholders_are_left_in_place(self):
        text = SmsTemplateResolver.render("Hi {{customerName}} {{eta}}", {"customerName": None})
        assert text == "Hi {{customerName}} {{eta}}"

    def test_company_name(self):
        assert company_name("skyrak") == "Skyrak"


@pytest.mark.unit
class TestTransport:

    def test_unconfigured_by_default(self):
        assert not SmsTransport().configured

    async def test_send_skipped_when_unconfigured(self):
        assert await SmsTransport().send("+233201234567", "hello") is False

    async def test_send_failure_returns_false(self, monkeypatch):
        transport = SmsTransport("AC123", "token", "+15005550006")

        def failing_send(phone, message):
            raise RuntimeError("twilio down")

        monkeypatch.setattr(transport, "_send_sync", failing_send)
        assert await transport.send("+233201234567", "hello") is False

    async def test_send_success(self, monkeypatch):
        transport = SmsTransport("AC123", "token", "+15005550006")
        monkeypatch.setattr(transport, "_send_sync", lambda phone, message: "SM1")
        assert await transport.send("+233201234567", "hello") is True
