from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from uuid import UUID
from datetime import date

from app.api import deps
from app.models.enums import InvoiceStatus
from app.services.invoice_service import InvoiceService
from app.services.revenue_service import RevenueService
from app.schemas.billing import (
    BillingRunRequest,
    GenerationSummary,
    InvoiceCancel,
    InvoiceListItem,
    InvoiceResponse,
    PaymentRecord,
    RevenueAnalytics,
    RevenueSnapshotRequest,
    RevenueSnapshotResponse,
    SweepSummary,
)
from app.schemas.responses import SuccessResponse
from app.core.exceptions import NotFound
from app.core.rate_limit import limiter, BATCH_RUN_LIMIT
from app.utils.time import get_utc_today

router = APIRouter()


@router.post(
    "/generate-invoices",
    response_model=SuccessResponse[GenerationSummary],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(BATCH_RUN_LIMIT)
async def generate_invoices(
    request: Request,
    run_in: Optional[BillingRunRequest] = None,
    session_factory: async_sessionmaker = Depends(deps.get_session_factory),
) -> Any:
    """
    Run monthly invoicing for every active gym. Safe to re-run.
    """
    reference_date = run_in.reference_date if run_in else None
    summary = await InvoiceService.generate_monthly_invoices(session_factory, reference_date)
    return SuccessResponse(
        data=summary,
        message=(
            f"Generated {summary.created} invoices, skipped {summary.skipped}, "
            f"failed {len(summary.failed)}"
        ),
    )


@router.post("/check-overdue-invoices", response_model=SuccessResponse[SweepSummary])
@limiter.limit(BATCH_RUN_LIMIT)
async def check_overdue_invoices(
    request: Request,
    run_in: Optional[BillingRunRequest] = None,
    session_factory: async_sessionmaker = Depends(deps.get_session_factory),
) -> Any:
    """
    Flag pending invoices past their due date as overdue.
    """
    reference_date = run_in.reference_date if run_in else None
    summary = await InvoiceService.sweep_overdue_invoices(session_factory, reference_date)
    return SuccessResponse(
        data=summary,
        message=f"{summary.transitioned} invoices marked overdue",
    )


@router.get("/invoices", response_model=SuccessResponse[List[InvoiceListItem]])
async def list_invoices(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    gym_id: Optional[UUID] = None,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    List gym invoices, newest first.
    """
    rows = await InvoiceService.list_invoices(
        db, month=month, year=year, status=status_filter, gym_id=gym_id
    )
    data = [
        InvoiceListItem(
            **InvoiceResponse.model_validate(invoice).model_dump(),
            gym_name=gym.name if gym else None,
            gym_owner=gym.owner if gym else None,
            gym_email=gym.email if gym else None,
        )
        for invoice, gym in rows
    ]
    return SuccessResponse(data=data)


@router.get("/invoices/{invoice_id}", response_model=SuccessResponse[InvoiceResponse])
async def get_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)
    if not invoice:
        raise NotFound("Invoice", invoice_id)
    return SuccessResponse(data=invoice)


@router.patch("/invoices/{invoice_id}", response_model=SuccessResponse[InvoiceResponse])
async def record_invoice_payment(
    invoice_id: UUID,
    payment_in: PaymentRecord,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Record a manual payment, settling the invoice in full.
    """
    invoice = await InvoiceService.record_payment(
        db,
        invoice_id,
        payment_method=payment_in.payment_method,
        payment_reference=payment_in.payment_reference,
        notes=payment_in.notes,
    )
    return SuccessResponse(data=invoice, message="Payment recorded successfully")


@router.post("/invoices/{invoice_id}/cancel", response_model=SuccessResponse[InvoiceResponse])
async def cancel_invoice(
    invoice_id: UUID,
    cancel_in: Optional[InvoiceCancel] = None,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    invoice = await InvoiceService.cancel_invoice(
        db, invoice_id, notes=cancel_in.notes if cancel_in else None
    )
    return SuccessResponse(data=invoice, message="Invoice cancelled")


@router.get("/revenue-analytics", response_model=SuccessResponse[RevenueAnalytics])
async def get_revenue_analytics(
    months: Optional[int] = Query(None, ge=1, le=24),
    reference_date: date = Depends(deps.get_reference_date),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Current period revenue, trend vs. last period and trailing monthly history.
    """
    analytics = await RevenueService.revenue_analytics(db, reference_date, months)
    return SuccessResponse(data=analytics)


@router.post(
    "/revenue-snapshots",
    response_model=SuccessResponse[RevenueSnapshotResponse],
    status_code=status.HTTP_201_CREATED,
)
async def close_revenue_period(
    snapshot_in: Optional[RevenueSnapshotRequest] = None,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Append a revenue snapshot for a period (current month by default).
    """
    today = get_utc_today()
    month = snapshot_in.month if snapshot_in and snapshot_in.month else today.month
    year = snapshot_in.year if snapshot_in and snapshot_in.year else today.year
    snapshot = await RevenueService.record_revenue_snapshot(db, month, year)
    return SuccessResponse(data=snapshot, message="Revenue snapshot recorded")


@router.get("/revenue-snapshots", response_model=SuccessResponse[List[RevenueSnapshotResponse]])
async def list_revenue_snapshots(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    snapshots = await RevenueService.list_revenue_snapshots(db, month=month, year=year)
    return SuccessResponse(data=snapshots)
