"""Initial back-office schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

ENUM_LENGTH = 32


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _account_fk(ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(
        "account_id",
        sa.Uuid(as_uuid=True),
        sa.ForeignKey("accounts.id", ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _account_fk(),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("phone_number", sa.String(length=32)),
        sa.Column("role", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("status", sa.String(length=ENUM_LENGTH), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _account_fk(),
        sa.Column(
            "agent_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=320)),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("passport_number", sa.String(length=64)),
        sa.Column("passport_expiry", sa.Date()),
        sa.Column("nationality", sa.String(length=120)),
        sa.Column("date_of_birth", sa.Date()),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("account_id", "email", name="uq_customers_account_id"),
    )

    op.create_table(
        "markup_settings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "account_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("flight_markup", sa.Numeric(10, 2), nullable=False),
        sa.Column("flight_markup_type", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("hotel_markup", sa.Numeric(10, 2), nullable=False),
        sa.Column("hotel_markup_type", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("activity_markup", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "activity_markup_type", sa.String(length=ENUM_LENGTH), nullable=False
        ),
        *_timestamps(),
    )

    op.create_table(
        "quotes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _account_fk(),
        sa.Column("quote_reference", sa.String(length=32), nullable=False, unique=True),
        sa.Column(
            "customer_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("customers.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "agent_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("status", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("markup", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("markup_strategy", sa.String(length=ENUM_LENGTH)),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("trip_start_date", sa.Date()),
        sa.Column("trip_end_date", sa.Date()),
        sa.Column("expiry_date", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.CheckConstraint(
            "discount >= 0 AND discount < 100", name="ck_quotes_discount_range"
        ),
        sa.CheckConstraint("markup >= 0", name="ck_quotes_markup_non_negative"),
        sa.CheckConstraint(
            "trip_end_date IS NULL OR trip_start_date IS NULL "
            "OR trip_end_date >= trip_start_date",
            name="ck_quotes_valid_trip_dates",
        ),
    )

    op.create_table(
        "quote_items",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "quote_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("quotes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("item_type", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("markup", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("markup_type", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("details", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("quantity >= 1", name="ck_quote_items_quantity_positive"),
        sa.CheckConstraint("cost >= 0", name="ck_quote_items_cost_non_negative"),
        sa.CheckConstraint(
            "markup >= 0", name="ck_quote_items_item_markup_non_negative"
        ),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _account_fk(),
        sa.Column(
            "booking_reference", sa.String(length=32), nullable=False, unique=True
        ),
        sa.Column(
            "quote_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("quotes.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "customer_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("customers.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "agent_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("status", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("payment_reference", sa.String(length=255)),
        sa.Column("travel_start_date", sa.Date(), nullable=False),
        sa.Column("travel_end_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "travel_end_date >= travel_start_date",
            name="ck_bookings_valid_travel_dates",
        ),
    )

    op.create_table(
        "booking_items",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("item_type", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
    )

    op.create_table(
        "booking_operations",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("operation_type", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("operation_status", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("original_details", sa.JSON()),
        sa.Column("new_details", sa.JSON()),
        sa.Column("reason", sa.Text()),
        sa.Column("change_fee", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column(
            "refund_amount", sa.Numeric(12, 2), nullable=False, server_default="0"
        ),
        sa.Column("supplier_reference", sa.String(length=255)),
        sa.Column("notes", sa.Text()),
        sa.Column(
            "created_by",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "booking_notifications",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("notification_type", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("metadata", sa.JSON()),
    )

    op.create_table(
        "email_templates",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _account_fk(),
        sa.Column("template_key", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("body_html", sa.Text(), nullable=False),
        sa.Column("body_text", sa.Text()),
        sa.Column("variables", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.UniqueConstraint(
            "account_id", "template_key", name="uq_email_templates_account_id"
        ),
    )

    op.create_table(
        "email_template_history",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "template_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("email_templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("body_html", sa.Text(), nullable=False),
        sa.Column("body_text", sa.Text()),
        sa.Column("variables", sa.JSON(), nullable=False),
        sa.Column("change_description", sa.Text()),
        sa.Column(
            "changed_by",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "emails_outbox",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _account_fk(),
        sa.Column("recipients", sa.JSON(), nullable=False),
        sa.Column(
            "template_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("email_templates.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "customer_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("customers.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "quote_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("quotes.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"),
        ),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("state", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("provider_message_id", sa.String(length=255)),
        sa.Column("error", sa.Text()),
        sa.Column("sent_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.CheckConstraint(
            "state in ('queued','sent','failed')", name="ck_emails_outbox_email_state"
        ),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _account_fk(ondelete="SET NULL", nullable=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("subject_id", sa.String(length=64)),
        sa.Column("description", sa.String(length=1024)),
        sa.Column("payload", sa.JSON()),
        sa.Column("ip_address", sa.String(length=64)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("emails_outbox")
    op.drop_table("email_template_history")
    op.drop_table("email_templates")
    op.drop_table("booking_notifications")
    op.drop_table("booking_operations")
    op.drop_table("booking_items")
    op.drop_table("bookings")
    op.drop_table("quote_items")
    op.drop_table("quotes")
    op.drop_table("markup_settings")
    op.drop_table("customers")
    op.drop_table("users")
    op.drop_table("accounts")
