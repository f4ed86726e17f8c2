"""Initial tables: containers, shipments, tracking ledger, code registry,
notifications, SMS templates, customer/partner directory.

Revision ID: 0001
Revises:
"""

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None


def _trackable_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization", sa.String(30), nullable=False, index=True),
        sa.Column("customer_id", sa.String(36), index=True),
        sa.Column("partner_id", sa.String(36), index=True),
        sa.Column("partner_customer_id", sa.String(36)),
        sa.Column("customer_ids", sa.JSON()),
        sa.Column("partner_ids", sa.JSON()),
        sa.Column("partner_assignments", sa.JSON()),
        sa.Column("status", sa.String(30), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    # ── Trackables ─────────────────────────────────────────────
    op.create_table(
        "containers",
        *_trackable_columns(),
        sa.Column("container_number", sa.String(20), nullable=False, index=True),
        sa.Column("size_type", sa.String(20)),
        sa.Column("vessel_name", sa.String(255)),
        sa.Column("departure_date", sa.DateTime()),
        sa.Column("eta", sa.DateTime()),
        sa.Column("arrival_date", sa.DateTime()),
        sa.Column("current_location", sa.String(255)),
        sa.UniqueConstraint("organization", "container_number", name="uq_container_org_number"),
    )
    op.create_table(
        "shipments",
        *_trackable_columns(),
        sa.Column("tracking_number", sa.String(50), nullable=False, index=True),
        sa.Column("description", sa.Text()),
        sa.Column("cbm", sa.Float()),
        sa.Column("quantity", sa.Integer()),
        sa.Column("received_quantity", sa.Integer()),
        sa.Column("origin_warehouse_id", sa.String(36)),
        sa.Column("current_warehouse_id", sa.String(36)),
        sa.Column("container_id", sa.String(36), sa.ForeignKey("containers.id"), index=True),
        sa.Column("received_at", sa.DateTime()),
        sa.Column("delivered_at", sa.DateTime()),
        sa.UniqueConstraint("organization", "tracking_number", name="uq_shipment_org_tracking"),
    )

    # ── Ledger ─────────────────────────────────────────────────
    op.create_table(
        "tracking_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("organization", sa.String(30), nullable=False, index=True),
        sa.Column("tracking_number", sa.String(50), nullable=False, index=True),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False, index=True),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("metadata", sa.JSON()),
        sa.Column("created_at", sa.DateTime(), nullable=False, index=True),
    )
    op.create_table(
        "tracking_codes",
        sa.Column("organization", sa.String(30), primary_key=True),
        sa.Column("code", sa.String(50), primary_key=True),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
    )

    # ── Fan-out collaborators ──────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization", sa.String(30), nullable=False, index=True),
        sa.Column("recipient_id", sa.String(36), nullable=False),
        sa.Column("recipient_type", sa.String(20), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), server_default="info"),
        sa.Column("read", sa.Boolean(), server_default=sa.false()),
        sa.Column("metadata", sa.JSON()),
        sa.Column("created_at", sa.DateTime(), nullable=False, index=True),
    )
    op.create_index(
        "ix_notifications_recipient", "notifications",
        ["organization", "recipient_id", "recipient_type"],
    )
    op.create_table(
        "sms_templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization", sa.String(30), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status_mapping", sa.JSON()),
        sa.Column("partner_id", sa.String(36), index=True),
        sa.Column("is_default", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_table(
        "customers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization", sa.String(30), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), server_default="client"),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(30)),
        sa.Column("address", sa.Text()),
        sa.Column("location", sa.String(50)),
        sa.Column("partner_id", sa.String(36), index=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_table(
        "partners",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization", sa.String(30), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("phone_number", sa.String(30), nullable=False, unique=True),
        sa.Column("business_address", sa.Text()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )


def downgrade():
    for table in (
        "partners", "customers", "sms_templates", "notifications",
        "tracking_codes", "tracking_entries", "shipments", "containers",
    ):
        op.drop_table(table)
