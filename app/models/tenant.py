"""Tenant Directory and Membership Census Models"""

from sqlalchemy import Column, String, Text, Integer, Numeric, Date, DateTime, Enum, CheckConstraint
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, GymScopedMixin
from app.models.enums import GymStatus, PricingPlanType, MembershipStatus, enum_values


class Gym(BaseModel):
    """
    Tenant/Gym model - the multi-tenant anchor.
    Carries the billing profile used by the monthly invoice run.
    """
    __tablename__ = "gyms"
    __table_args__ = (
        CheckConstraint("rate_per_member > 0", name="ck_gym_rate_positive"),
    )

    # Directory
    name = Column(String(255), nullable=False)
    owner = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    status = Column(
        Enum(GymStatus, name="gym_status", values_callable=enum_values),
        default=GymStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    # Billing profile
    pricing_plan_type = Column(
        Enum(PricingPlanType, name="pricing_plan_type", values_callable=enum_values),
        default=PricingPlanType.STANDARD,
        nullable=False,
    )
    rate_per_member = Column(Numeric(10, 2), nullable=False)
    billing_cycle_start = Column(Integer, default=1, nullable=False)
    pricing_updated_at = Column(DateTime, nullable=True)

    # Relationships
    invoices = relationship("GymInvoice", back_populates="gym")
    memberships = relationship("Membership", back_populates="gym", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Gym {self.name} - {self.pricing_plan_type}>"


class Membership(BaseModel, GymScopedMixin):
    """
    Member subscription to a gym.
    Only read here, to count active members at invoice time.
    """
    __tablename__ = "memberships"

    member_name = Column(String(255), nullable=True)
    status = Column(
        Enum(MembershipStatus, name="membership_status", values_callable=enum_values),
        default=MembershipStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=False)

    gym = relationship("Gym", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<Membership {self.gym_id} - {self.status}>"
