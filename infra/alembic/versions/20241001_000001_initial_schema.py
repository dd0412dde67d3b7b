"""Initial field service schema."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20241001_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("last_name", sa.String(length=255), nullable=False, server_default=sa.text("''")),
        sa.Column("phone", sa.String(length=50), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=50), nullable=True),
        sa.Column("zip_code", sa.String(length=20), nullable=True),
        sa.Column("special_instructions", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "technicians",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("specialization", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default=sa.text("'available'")),
    )

    op.create_table(
        "service_types",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("estimated_duration_minutes", sa.Integer(), nullable=True),
    )

    op.create_table(
        "equipment",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "customer_id", sa.String(length=36), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("equipment_type", sa.String(length=100), nullable=False),
        sa.Column("brand", sa.String(length=100), nullable=True),
        sa.Column("model_number", sa.String(length=100), nullable=True),
        sa.Column("age_years", sa.Integer(), nullable=True),
        sa.Column("last_service_date", sa.Date(), nullable=True),
    )

    op.create_table(
        "service_requests",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("service_type_id", sa.String(length=36), sa.ForeignKey("service_types.id"), nullable=True),
        sa.Column("requested_service", sa.String(length=255), nullable=False),
        sa.Column("assigned_tech_id", sa.String(length=36), sa.ForeignKey("technicians.id"), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("preferred_date", sa.Date(), nullable=True),
        sa.Column("preferred_time", sa.Time(), nullable=True),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("scheduled_time", sa.Time(), nullable=True),
        sa.Column("actual_start_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("actual_end_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("issue_description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_service_requests_tech_schedule",
        "service_requests",
        ["assigned_tech_id", "scheduled_date", "status"],
    )

    op.create_table(
        "service_records",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "request_id", sa.String(length=36), sa.ForeignKey("service_requests.id"), nullable=False, unique=True
        ),
        sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("tech_id", sa.String(length=36), sa.ForeignKey("technicians.id"), nullable=True),
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("work_performed", sa.Text(), nullable=False),
        sa.Column("parts_used", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("tech_notes", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "chat_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("started_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        "chat_messages",
        sa.Column("position", sa.BigInteger(), sa.Identity(always=True), primary_key=True, nullable=False),
        sa.Column("id", sa.String(length=36), nullable=False, unique=True),
        sa.Column(
            "session_id", sa.String(length=36), sa.ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("sender", sa.String(length=50), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("chat_messages")
    op.drop_table("chat_sessions")
    op.drop_table("service_records")
    op.drop_index("ix_service_requests_tech_schedule", table_name="service_requests")
    op.drop_table("service_requests")
    op.drop_table("equipment")
    op.drop_table("service_types")
    op.drop_table("technicians")
    op.drop_table("customers")
