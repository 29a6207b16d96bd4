"""Centralized Enum Definitions"""

import enum


# Tenant directory
class GymStatus(str, enum.Enum):
    """Tenant account status - only active gyms are billed"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class PricingPlanType(str, enum.Enum):
    """Per-member pricing plan: platform standard rate or negotiated custom rate"""
    STANDARD = "standard"
    CUSTOM = "custom"


# Membership census
class MembershipStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


# Billing
class InvoiceStatus(str, enum.Enum):
    """Gym invoice lifecycle status"""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    """How a gym settled its invoice (recorded manually by an administrator)"""
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    UPI = "upi"
    CARD = "card"
    CHEQUE = "cheque"
    OTHER = "other"


def enum_values(enum_cls) -> list:
    """Persist enum values (not member names) so the stored strings match the API"""
    return [member.value for member in enum_cls]
