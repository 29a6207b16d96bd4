from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator
from uuid import UUID
from datetime import datetime, date
from decimal import Decimal

from app.config import settings
from app.models.enums import InvoiceStatus, PricingPlanType, PaymentMethod, GymStatus


# --- Invoices ---

class InvoiceResponse(BaseModel):
    id: UUID
    invoice_number: str
    gym_id: UUID
    month: int
    year: int
    active_members: int
    rate_per_member: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    outstanding_amount: Decimal
    status: InvoiceStatus
    due_date: date
    paid_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_ref: Optional[str] = None
    notes: Optional[str] = None
    generated_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceListItem(InvoiceResponse):
    gym_name: Optional[str] = None
    gym_owner: Optional[str] = None
    gym_email: Optional[str] = None


class InvoiceSummary(BaseModel):
    """Short invoice view embedded in the tenant billing overview"""
    id: UUID
    invoice_number: str
    status: InvoiceStatus
    amount: Decimal


class PaymentRecord(BaseModel):
    """Manual settlement recorded by an administrator"""
    payment_method: PaymentMethod
    payment_reference: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class InvoiceCancel(BaseModel):
    notes: Optional[str] = None


# --- Batch runs ---

class BillingRunRequest(BaseModel):
    """Reference date for a billing run; defaults to today (UTC)"""
    reference_date: Optional[date] = None


class TenantFailure(BaseModel):
    tenant_id: UUID
    reason: str


class GenerationSummary(BaseModel):
    reference_date: date
    created: int = 0
    skipped: int = 0
    failed: List[TenantFailure] = []
    invoices: List[InvoiceResponse] = []


class InvoiceFailure(BaseModel):
    invoice_id: UUID
    reason: str


class SweepSummary(BaseModel):
    reference_date: date
    transitioned: int = 0
    skipped: int = 0
    failed: List[InvoiceFailure] = []


# --- Tenant pricing ---

class PricingUpdate(BaseModel):
    pricing_plan_type: PricingPlanType
    rate_per_member: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    billing_cycle_start: int = 1

    @field_validator("rate_per_member")
    @classmethod
    def check_rate(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v <= 0:
            raise ValueError("rate_per_member must be greater than 0")
        return v

    @field_validator("billing_cycle_start")
    @classmethod
    def check_cycle_day(cls, v: int) -> int:
        if v not in settings.ALLOWED_BILLING_CYCLE_DAYS:
            raise ValueError(
                f"billing_cycle_start must be one of {settings.ALLOWED_BILLING_CYCLE_DAYS}"
            )
        return v


class GymPricingResponse(BaseModel):
    id: UUID
    name: str
    status: GymStatus
    pricing_plan_type: PricingPlanType
    rate_per_member: Decimal
    billing_cycle_start: int
    pricing_updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GymBillingOverview(BaseModel):
    id: UUID
    name: str
    owner: str
    email: str
    status: GymStatus
    pricing_plan_type: PricingPlanType
    active_members: int
    rate_per_member: Decimal
    monthly_billing: Decimal
    billing_cycle_start: int
    next_invoice_date: date
    last_invoice: Optional[InvoiceSummary] = None


# --- Revenue analytics ---

class RevenueSnapshotData(BaseModel):
    month: int
    year: int
    total_gyms: int
    active_gyms: int
    total_members: int
    total_revenue: Decimal
    standard_plan_revenue: Decimal
    custom_plan_revenue: Decimal
    paid_amount: Decimal
    pending_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class RevenueSnapshotResponse(RevenueSnapshotData):
    id: UUID
    created_at: datetime


class RevenueSnapshotRequest(BaseModel):
    """Period to close; defaults to the current month"""
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = Field(None, ge=2000)


class RevenueAnalytics(BaseModel):
    month: int
    year: int
    current: RevenueSnapshotData
    previous: RevenueSnapshotData
    revenue_trend: float
    member_trend: float
    trailing: List[RevenueSnapshotData]
