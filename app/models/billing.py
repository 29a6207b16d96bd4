"""Billing Models: gym invoices and revenue snapshots"""

from decimal import Decimal

from sqlalchemy import (
    Column, String, Text, Integer, Numeric, Date, DateTime, Enum,
    UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, GymScopedMixin
from app.models.enums import InvoiceStatus, enum_values
from app.utils.time import get_utc_now


class GymInvoice(BaseModel, GymScopedMixin):
    """
    Monthly platform invoice billed to a gym.

    active_members, rate_per_member, total_amount and due_date are snapshots
    taken at generation time and are never recomputed. Settlement is full-only:
    paid_amount is either 0 or total_amount.
    """
    __tablename__ = "gym_invoices"
    __table_args__ = (
        # One invoice per gym per billing period
        UniqueConstraint("gym_id", "month", "year", name="uq_gym_invoice_period"),
        CheckConstraint("month >= 1 AND month <= 12", name="ck_gym_invoice_month"),
        CheckConstraint(
            "paid_amount = 0 OR paid_amount = total_amount",
            name="ck_gym_invoice_full_settlement",
        ),
        Index("ix_gym_invoices_status_due_date", "status", "due_date"),
        Index("ix_gym_invoices_period", "year", "month"),
    )

    invoice_number = Column(String(64), nullable=False, unique=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    # Snapshot fields
    active_members = Column(Integer, nullable=False)
    rate_per_member = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    generated_at = Column(DateTime, default=get_utc_now, nullable=False)

    # Lifecycle
    status = Column(
        Enum(InvoiceStatus, name="gym_invoice_status", values_callable=enum_values),
        default=InvoiceStatus.PENDING,
        nullable=False,
        index=True,
    )
    paid_amount = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    paid_date = Column(DateTime, nullable=True)
    payment_method = Column(String(50), nullable=True)
    payment_ref = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    gym = relationship("Gym", back_populates="invoices")

    @property
    def outstanding_amount(self) -> Decimal:
        return Decimal(self.total_amount or 0) - Decimal(self.paid_amount or 0)

    def __repr__(self) -> str:
        return f"<GymInvoice {self.invoice_number} - {self.status}>"


class RevenueSnapshot(BaseModel):
    """
    Append-only monthly revenue rollup derived from invoice history.
    Several rows may exist for a period; the newest one is current.
    """
    __tablename__ = "revenue_snapshots"
    __table_args__ = (
        Index("ix_revenue_snapshots_period", "year", "month"),
    )

    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    total_gyms = Column(Integer, nullable=False)
    active_gyms = Column(Integer, nullable=False)
    total_members = Column(Integer, nullable=False)
    total_revenue = Column(Numeric(14, 2), nullable=False)
    standard_plan_revenue = Column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    custom_plan_revenue = Column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    paid_amount = Column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    pending_amount = Column(Numeric(14, 2), default=Decimal("0"), nullable=False)

    def __repr__(self) -> str:
        return f"<RevenueSnapshot {self.month:02d}/{self.year} {self.total_revenue}>"
