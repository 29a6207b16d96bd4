"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel, GymScopedMixin
from app.models.enums import (
    GymStatus,
    PricingPlanType,
    MembershipStatus,
    InvoiceStatus,
    PaymentMethod,
)
from app.models.tenant import Gym, Membership
from app.models.billing import GymInvoice, RevenueSnapshot


__all__ = [
    # Base classes
    "BaseModel",
    "GymScopedMixin",

    # Enums
    "GymStatus",
    "PricingPlanType",
    "MembershipStatus",
    "InvoiceStatus",
    "PaymentMethod",

    # Tenant directory
    "Gym",
    "Membership",

    # Billing
    "GymInvoice",
    "RevenueSnapshot",
]
