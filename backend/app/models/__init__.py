"""Aggregate model imports for Alembic auto-detection."""

# Trackables
from app.models.container import Container, ContainerStatus  # noqa: F401
from app.models.shipment import Shipment, ShipmentStatus  # noqa: F401

# Ledger
from app.models.tracking import TrackingCode, TrackingEntry  # noqa: F401

# Fan-out collaborators
from app.models.notification import Notification  # noqa: F401
from app.models.sms_template import SmsTemplate  # noqa: F401
from app.models.directory import Customer, Partner  # noqa: F401
