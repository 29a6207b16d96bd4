"""gym billing schema: gyms, memberships, gym_invoices, revenue_snapshots

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-16

"""
from alembic import op
import sqlalchemy as sa


revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


gym_status = sa.Enum("active", "inactive", "suspended", name="gym_status")
pricing_plan_type = sa.Enum("standard", "custom", name="pricing_plan_type")
membership_status = sa.Enum("active", "expired", "cancelled", name="membership_status")
gym_invoice_status = sa.Enum("pending", "paid", "overdue", "cancelled", name="gym_invoice_status")


def upgrade() -> None:
    op.create_table(
        "gyms",
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("owner", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("status", gym_status, nullable=False),
        sa.Column("pricing_plan_type", pricing_plan_type, nullable=False),
        sa.Column("rate_per_member", sa.Numeric(10, 2), nullable=False),
        sa.Column("billing_cycle_start", sa.Integer(), nullable=False),
        sa.Column("pricing_updated_at", sa.DateTime(), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("rate_per_member > 0", name="ck_gym_rate_positive"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_gyms_id"), "gyms", ["id"], unique=False)
    op.create_index(op.f("ix_gyms_status"), "gyms", ["status"], unique=False)

    op.create_table(
        "memberships",
        sa.Column("member_name", sa.String(255), nullable=True),
        sa.Column("status", membership_status, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("gym_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["gym_id"], ["gyms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_memberships_id"), "memberships", ["id"], unique=False)
    op.create_index(op.f("ix_memberships_gym_id"), "memberships", ["gym_id"], unique=False)
    op.create_index(op.f("ix_memberships_status"), "memberships", ["status"], unique=False)

    op.create_table(
        "gym_invoices",
        sa.Column("invoice_number", sa.String(64), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("active_members", sa.Integer(), nullable=False),
        sa.Column("rate_per_member", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("generated_at", sa.DateTime(), nullable=False),
        sa.Column("status", gym_invoice_status, nullable=False),
        sa.Column("paid_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("paid_date", sa.DateTime(), nullable=True),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("payment_ref", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("gym_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["gym_id"], ["gyms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_number"),
        sa.UniqueConstraint("gym_id", "month", "year", name="uq_gym_invoice_period"),
        sa.CheckConstraint("month >= 1 AND month <= 12", name="ck_gym_invoice_month"),
        sa.CheckConstraint(
            "paid_amount = 0 OR paid_amount = total_amount",
            name="ck_gym_invoice_full_settlement",
        ),
    )
    op.create_index(op.f("ix_gym_invoices_id"), "gym_invoices", ["id"], unique=False)
    op.create_index(op.f("ix_gym_invoices_gym_id"), "gym_invoices", ["gym_id"], unique=False)
    op.create_index(op.f("ix_gym_invoices_status"), "gym_invoices", ["status"], unique=False)
    op.create_index("ix_gym_invoices_status_due_date", "gym_invoices", ["status", "due_date"], unique=False)
    op.create_index("ix_gym_invoices_period", "gym_invoices", ["year", "month"], unique=False)

    op.create_table(
        "revenue_snapshots",
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("total_gyms", sa.Integer(), nullable=False),
        sa.Column("active_gyms", sa.Integer(), nullable=False),
        sa.Column("total_members", sa.Integer(), nullable=False),
        sa.Column("total_revenue", sa.Numeric(14, 2), nullable=False),
        sa.Column("standard_plan_revenue", sa.Numeric(14, 2), nullable=False),
        sa.Column("custom_plan_revenue", sa.Numeric(14, 2), nullable=False),
        sa.Column("paid_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("pending_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_revenue_snapshots_id"), "revenue_snapshots", ["id"], unique=False)
    op.create_index("ix_revenue_snapshots_period", "revenue_snapshots", ["year", "month"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_revenue_snapshots_period", table_name="revenue_snapshots")
    op.drop_index(op.f("ix_revenue_snapshots_id"), table_name="revenue_snapshots")
    op.drop_table("revenue_snapshots")

    op.drop_index("ix_gym_invoices_period", table_name="gym_invoices")
    op.drop_index("ix_gym_invoices_status_due_date", table_name="gym_invoices")
    op.drop_index(op.f("ix_gym_invoices_status"), table_name="gym_invoices")
    op.drop_index(op.f("ix_gym_invoices_gym_id"), table_name="gym_invoices")
    op.drop_index(op.f("ix_gym_invoices_id"), table_name="gym_invoices")
    op.drop_table("gym_invoices")

    op.drop_index(op.f("ix_memberships_status"), table_name="memberships")
    op.drop_index(op.f("ix_memberships_gym_id"), table_name="memberships")
    op.drop_index(op.f("ix_memberships_id"), table_name="memberships")
    op.drop_table("memberships")

    op.drop_index(op.f("ix_gyms_status"), table_name="gyms")
    op.drop_index(op.f("ix_gyms_id"), table_name="gyms")
    op.drop_table("gyms")

    bind = op.get_bind()
    for enum_type in (gym_invoice_status, membership_status, pricing_plan_type, gym_status):
        enum_type.drop(bind, checkfirst=True)
