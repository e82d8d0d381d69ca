"""create distribution tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from app.core.constants import (
    ASSIGNMENT_METHOD_CHECK_CLAUSE,
    ASSIGNMENT_STATUS_CHECK_CLAUSE,
    LEAD_STATUS_CHECK_CLAUSE,
    SUBSCRIPTION_STATUS_CHECK_CLAUSE,
    TERRITORY_TYPE_CHECK_CLAUSE,
)

# revision identifiers, used by Alembic.
revision: str = "1a2b3c4d5e6f"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "agencies",
        sa.Column("agency_id", sa.Uuid(), primary_key=True),
        sa.Column("business_name", sa.String(200), nullable=False),
        sa.Column("industry", sa.String(100)),
        sa.Column(
            "subscription_status",
            sa.String(20),
            nullable=False,
            server_default="trial",
        ),
        sa.Column(
            "current_lead_count", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("max_leads", sa.Integer()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            "current_lead_count >= 0", name="ck_agency_lead_count_nonneg"
        ),
        sa.CheckConstraint(
            "max_leads IS NULL OR max_leads >= 0", name="ck_agency_max_leads_nonneg"
        ),
        sa.CheckConstraint(
            SUBSCRIPTION_STATUS_CHECK_CLAUSE, name="ck_agency_subscription_status"
        ),
    )

    op.create_table(
        "territories",
        sa.Column("territory_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "agency_id",
            sa.Uuid(),
            sa.ForeignKey("agencies.agency_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("value", sa.String(100), nullable=False),
        sa.Column("state", sa.String(2)),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(TERRITORY_TYPE_CHECK_CLAUSE, name="ck_territory_type"),
        sa.CheckConstraint("priority BETWEEN 0 AND 10", name="ck_territory_priority"),
    )
    op.create_index("idx_territories_type_value", "territories", ["type", "value"])
    op.create_index("idx_territories_agency", "territories", ["agency_id"])

    op.create_table(
        "leads",
        sa.Column("lead_id", sa.Uuid(), primary_key=True),
        sa.Column("zipcode", sa.String(10)),
        sa.Column("city", sa.String(100)),
        sa.Column("county", sa.String(100)),
        sa.Column("state", sa.String(2)),
        sa.Column("industry", sa.String(100)),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        sa.Column(
            "assigned_agency_id",
            sa.Uuid(),
            sa.ForeignKey("agencies.agency_id", ondelete="SET NULL"),
        ),
        sa.Column("assigned_at", sa.DateTime(timezone=True)),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint(LEAD_STATUS_CHECK_CLAUSE, name="ck_lead_status"),
    )
    op.create_index("idx_leads_status_created", "leads", ["status", "created_at"])

    op.create_table(
        "lead_assignments",
        sa.Column("assignment_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "lead_id",
            sa.Uuid(),
            sa.ForeignKey("leads.lead_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "agency_id",
            sa.Uuid(),
            sa.ForeignKey("agencies.agency_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("assignment_method", sa.String(20), nullable=False),
        sa.Column("territory_type", sa.String(20)),
        sa.Column("territory_value", sa.String(100)),
        sa.Column("reason", sa.Text()),
        sa.Column(
            "assigned_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column("rejected_at", sa.DateTime(timezone=True)),
        sa.Column("reassigned_at", sa.DateTime(timezone=True)),
        sa.Column("superseded_by_id", sa.Uuid()),
        sa.CheckConstraint(ASSIGNMENT_STATUS_CHECK_CLAUSE, name="ck_assignment_status"),
        sa.CheckConstraint(ASSIGNMENT_METHOD_CHECK_CLAUSE, name="ck_assignment_method"),
    )
    # At most one active assignment per lead
    op.create_index(
        "uq_lead_assignments_active_lead",
        "lead_assignments",
        ["lead_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )
    op.create_index(
        "idx_lead_assignments_agency_status",
        "lead_assignments",
        ["agency_id", "status"],
    )
    op.create_index(
        "idx_lead_assignments_territory",
        "lead_assignments",
        ["territory_type", "territory_value"],
    )

    op.create_table(
        "round_robin_cursors",
        sa.Column("cursor_id", sa.Uuid(), primary_key=True),
        sa.Column("territory_type", sa.String(20), nullable=False),
        sa.Column("territory_value", sa.String(100), nullable=False),
        sa.Column("industry", sa.String(100), nullable=False, server_default=""),
        sa.Column(
            "last_agency_id",
            sa.Uuid(),
            sa.ForeignKey("agencies.agency_id", ondelete="SET NULL"),
        ),
        sa.Column("rotation_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "territory_type",
            "territory_value",
            "industry",
            name="uq_round_robin_cursor_key",
        ),
    )

    op.create_table(
        "distribution_audit_logs",
        sa.Column("audit_id", sa.Uuid(), primary_key=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("lead_id", sa.Uuid()),
        sa.Column("agency_id", sa.Uuid()),
        sa.Column("assignment_id", sa.Uuid()),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("message", sa.Text()),
        sa.Column("details", postgresql.JSONB()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index(
        "idx_distribution_audit_lead", "distribution_audit_logs", ["lead_id"]
    )
    op.create_index(
        "idx_distribution_audit_action_created",
        "distribution_audit_logs",
        ["action", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("distribution_audit_logs")
    op.drop_table("round_robin_cursors")
    op.drop_table("lead_assignments")
    op.drop_table("leads")
    op.drop_table("territories")
    op.drop_table("agencies")
