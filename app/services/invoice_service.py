"""Invoice Service - monthly gym invoice run, overdue sweep and settlement"""

import asyncio
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar
from uuid import UUID

from sqlalchemy import select, desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.core.exceptions import (
    AlreadyExists,
    AlreadySettled,
    BillingError,
    Cancelled,
    ConfigurationError,
    InvalidTransition,
    NotFound,
)
from app.core.logging import get_logger
from app.models.billing import GymInvoice
from app.models.enums import GymStatus, InvoiceStatus, PaymentMethod
from app.models.tenant import Gym
from app.schemas.billing import (
    GenerationSummary,
    InvoiceFailure,
    InvoiceResponse,
    SweepSummary,
    TenantFailure,
)
from app.services.billing_cycle import compute_period
from app.services.invoice_state import get_invoice_status, transition_invoice
from app.services.member_census import MemberCensus
from app.services.pricing_service import PricingService
from app.utils.time import get_utc_now, get_utc_today

logger = get_logger(__name__)

T = TypeVar("T")

CENTS = Decimal("0.01")


async def _gather_bounded(
    items: Iterable[Any],
    worker: Callable[[Any], Awaitable[T]],
    max_workers: int,
) -> List[T]:
    """Run ``worker`` over ``items`` with at most ``max_workers`` in flight"""
    semaphore = asyncio.Semaphore(max_workers)

    async def _run(item):
        async with semaphore:
            return await worker(item)

    return list(await asyncio.gather(*(_run(item) for item in items)))


def _raise_for_status(invoice_id: UUID, status: InvoiceStatus, target: InvoiceStatus) -> None:
    """Typed rejection for an invoice that cannot move to ``target``"""
    if status == InvoiceStatus.PAID:
        if target == InvoiceStatus.PAID:
            raise AlreadySettled(invoice_id)
        raise InvalidTransition(status.value, target.value)
    if status == InvoiceStatus.CANCELLED:
        raise Cancelled(invoice_id, target.value)
    raise InvalidTransition(status.value, target.value)


class InvoiceService:
    """Service layer for gym invoices"""

    @staticmethod
    async def get_invoice_by_id(db: AsyncSession, invoice_id: UUID) -> Optional[GymInvoice]:
        result = await db.execute(
            select(GymInvoice).where(GymInvoice.id == invoice_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_invoice_for_period(
        db: AsyncSession, gym_id: UUID, month: int, year: int
    ) -> Optional[GymInvoice]:
        result = await db.execute(
            select(GymInvoice).where(
                GymInvoice.gym_id == gym_id,
                GymInvoice.month == month,
                GymInvoice.year == year,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def build_invoice_number(gym_id: UUID, month: int, year: int) -> str:
        """GS-YYYYMM-<gym uuid>; unique because (gym, month, year) is unique"""
        return f"{settings.INVOICE_NUMBER_PREFIX}-{year}{month:02d}-{gym_id.hex.upper()}"

    @staticmethod
    async def list_invoices(
        db: AsyncSession,
        month: Optional[int] = None,
        year: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
        gym_id: Optional[UUID] = None,
    ) -> List[Tuple[GymInvoice, Optional[Gym]]]:
        """Invoices matching the filters, newest first, with their gym"""
        stmt = select(GymInvoice, Gym).outerjoin(Gym, GymInvoice.gym_id == Gym.id)
        if month is not None:
            stmt = stmt.where(GymInvoice.month == month)
        if year is not None:
            stmt = stmt.where(GymInvoice.year == year)
        if status is not None:
            stmt = stmt.where(GymInvoice.status == status)
        if gym_id is not None:
            stmt = stmt.where(GymInvoice.gym_id == gym_id)
        stmt = stmt.order_by(desc(GymInvoice.created_at), GymInvoice.invoice_number)
        result = await db.execute(stmt)
        return [(invoice, gym) for invoice, gym in result.all()]

    @staticmethod
    async def get_latest_invoices_by_gym(
        db: AsyncSession, gym_ids: Iterable[UUID]
    ) -> Dict[UUID, GymInvoice]:
        """Most recent invoice per gym in one query; gyms never invoiced are absent"""
        gym_ids = list(gym_ids)
        if not gym_ids:
            return {}
        period_key = GymInvoice.year * 100 + GymInvoice.month
        latest = (
            select(GymInvoice.gym_id, func.max(period_key).label("period_key"))
            .where(GymInvoice.gym_id.in_(gym_ids))
            .group_by(GymInvoice.gym_id)
            .subquery()
        )
        result = await db.execute(
            select(GymInvoice).join(
                latest,
                (GymInvoice.gym_id == latest.c.gym_id) & (period_key == latest.c.period_key),
            )
        )
        return {invoice.gym_id: invoice for invoice in result.scalars().all()}

    # ==================== GENERATION ====================

    @staticmethod
    async def create_invoice_for_gym(
        db: AsyncSession,
        gym: Gym,
        reference_date: date,
    ) -> GymInvoice:
        """
        Create the pending invoice for one gym's billing period. Does not commit.

        The lookup for an existing invoice only saves work; the insert runs in
        a SAVEPOINT and the (gym_id, month, year) unique constraint decides
        which of two racing runs creates the invoice. An already invoiced
        period is reported before the billing profile is validated.

        Raises:
            AlreadyExists: an invoice for this gym and period is already stored
            ConfigurationError: the gym's billing profile is invalid
        """
        # The period is the reference month whatever the cycle day
        month, year = reference_date.month, reference_date.year
        existing = await InvoiceService.get_invoice_for_period(db, gym.id, month, year)
        if existing:
            raise AlreadyExists(gym.id, month, year)

        rate = PricingService.validate_pricing(gym.rate_per_member, gym.billing_cycle_start)
        period = compute_period(reference_date, gym.billing_cycle_start)

        active_members = await MemberCensus.count_active_members(db, gym.id, reference_date)
        total_amount = (rate * active_members).quantize(CENTS)

        invoice = GymInvoice(
            invoice_number=InvoiceService.build_invoice_number(gym.id, period.month, period.year),
            gym_id=gym.id,
            month=period.month,
            year=period.year,
            active_members=active_members,
            rate_per_member=rate,
            total_amount=total_amount,
            paid_amount=Decimal("0"),
            status=InvoiceStatus.PENDING,
            due_date=period.due_date,
            generated_at=get_utc_now(),
        )
        try:
            async with db.begin_nested():
                db.add(invoice)
        except IntegrityError:
            # Lost the race to a concurrent run, or a different constraint failed
            if await InvoiceService.get_invoice_for_period(db, gym.id, period.month, period.year):
                raise AlreadyExists(gym.id, period.month, period.year)
            raise
        return invoice

    @staticmethod
    async def _generate_for_gym(
        session_factory: async_sessionmaker,
        gym_id: UUID,
        reference_date: date,
        run_id: str,
    ) -> Tuple[str, Optional[GymInvoice], Optional[str]]:
        """One unit of the invoice run: ("created" | "skipped" | "failed", invoice, reason)"""
        async with session_factory() as db:
            try:
                gym = await db.get(Gym, gym_id)
                if gym is None:
                    raise NotFound("Gym", gym_id)
                invoice = await InvoiceService.create_invoice_for_gym(db, gym, reference_date)
                await db.commit()
                await db.refresh(invoice)
            except AlreadyExists:
                await db.rollback()
                return "skipped", None, None
            except BillingError as e:
                await db.rollback()
                logger.warning(
                    "Invoice generation failed for gym",
                    extra={"run_id": run_id, "gym_id": str(gym_id), "reason": e.message},
                )
                return "failed", None, e.message
            except Exception as e:
                await db.rollback()
                logger.error(
                    f"Unexpected error generating invoice: {str(e)}",
                    extra={"run_id": run_id, "gym_id": str(gym_id)},
                    exc_info=True,
                )
                return "failed", None, f"Unexpected error: {str(e)}"

        logger.info(
            "Invoice generated",
            extra={
                "run_id": run_id,
                "gym_id": str(gym_id),
                "invoice_number": invoice.invoice_number,
                "active_members": invoice.active_members,
                "total_amount": str(invoice.total_amount),
            },
        )
        return "created", invoice, None

    @staticmethod
    async def generate_monthly_invoices(
        session_factory: async_sessionmaker,
        reference_date: Optional[date] = None,
        max_workers: Optional[int] = None,
    ) -> GenerationSummary:
        """
        Invoice every active gym for the period containing ``reference_date``.

        Safe to call repeatedly: gyms already invoiced for the period are
        reported as skipped. One gym's failure never aborts the run.
        """
        reference_date = reference_date or get_utc_today()
        max_workers = max_workers or settings.BILLING_MAX_WORKERS
        run_id = uuid.uuid4().hex

        async with session_factory() as db:
            result = await db.execute(
                select(Gym.id).where(Gym.status == GymStatus.ACTIVE).order_by(Gym.created_at)
            )
            gym_ids = list(result.scalars().all())

        logger.info(
            "Starting invoice generation",
            extra={"run_id": run_id, "reference_date": reference_date.isoformat(), "gyms": len(gym_ids)},
        )

        outcomes = await _gather_bounded(
            gym_ids,
            lambda gym_id: InvoiceService._generate_for_gym(session_factory, gym_id, reference_date, run_id),
            max_workers,
        )

        summary = GenerationSummary(reference_date=reference_date)
        for gym_id, (outcome, invoice, reason) in zip(gym_ids, outcomes):
            if outcome == "created":
                summary.created += 1
                summary.invoices.append(InvoiceResponse.model_validate(invoice))
            elif outcome == "skipped":
                summary.skipped += 1
            else:
                summary.failed.append(TenantFailure(tenant_id=gym_id, reason=reason))

        logger.info(
            "Invoice generation finished",
            extra={
                "run_id": run_id,
                "created_count": summary.created,
                "skipped_count": summary.skipped,
                "failed_count": len(summary.failed),
            },
        )
        return summary

    # ==================== OVERDUE SWEEP ====================

    @staticmethod
    async def _mark_overdue(
        session_factory: async_sessionmaker,
        invoice_id: UUID,
        run_id: str,
    ) -> Tuple[str, Optional[str]]:
        async with session_factory() as db:
            try:
                applied = await transition_invoice(
                    db, invoice_id, {InvoiceStatus.PENDING}, InvoiceStatus.OVERDUE
                )
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.error(
                    f"Unexpected error marking invoice overdue: {str(e)}",
                    extra={"run_id": run_id, "invoice_id": str(invoice_id)},
                    exc_info=True,
                )
                return "failed", str(e)
        return ("transitioned", None) if applied else ("skipped", None)

    @staticmethod
    async def sweep_overdue_invoices(
        session_factory: async_sessionmaker,
        reference_date: Optional[date] = None,
        grace_days: Optional[int] = None,
        max_workers: Optional[int] = None,
    ) -> SweepSummary:
        """
        Move pending invoices whose due date has passed to overdue.

        An invoice is past due when its due date is strictly before the
        reference date minus the grace period. Invoices paid or cancelled
        after being selected are left alone and counted as skipped.
        """
        reference_date = reference_date or get_utc_today()
        grace_days = settings.OVERDUE_GRACE_DAYS if grace_days is None else grace_days
        max_workers = max_workers or settings.BILLING_MAX_WORKERS
        cutoff = reference_date - timedelta(days=grace_days)
        run_id = uuid.uuid4().hex

        async with session_factory() as db:
            result = await db.execute(
                select(GymInvoice.id)
                .where(
                    GymInvoice.status == InvoiceStatus.PENDING,
                    GymInvoice.due_date < cutoff,
                )
                .order_by(GymInvoice.due_date)
            )
            invoice_ids = list(result.scalars().all())

        logger.info(
            "Starting overdue sweep",
            extra={"run_id": run_id, "cutoff": cutoff.isoformat(), "candidates": len(invoice_ids)},
        )

        outcomes = await _gather_bounded(
            invoice_ids,
            lambda invoice_id: InvoiceService._mark_overdue(session_factory, invoice_id, run_id),
            max_workers,
        )

        summary = SweepSummary(reference_date=reference_date)
        for invoice_id, (outcome, reason) in zip(invoice_ids, outcomes):
            if outcome == "transitioned":
                summary.transitioned += 1
            elif outcome == "skipped":
                summary.skipped += 1
            else:
                summary.failed.append(InvoiceFailure(invoice_id=invoice_id, reason=reason))

        logger.info(
            "Overdue sweep finished",
            extra={
                "run_id": run_id,
                "transitioned_count": summary.transitioned,
                "skipped_count": summary.skipped,
                "failed_count": len(summary.failed),
            },
        )
        return summary

    # ==================== SETTLEMENT ====================

    @staticmethod
    async def record_payment(
        db: AsyncSession,
        invoice_id: UUID,
        payment_method: PaymentMethod,
        payment_reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> GymInvoice:
        """
        Settle a pending or overdue invoice in full.

        Raises:
            NotFound: unknown invoice
            AlreadySettled: invoice is already paid
            Cancelled: invoice was cancelled
        """
        invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)
        if not invoice:
            raise NotFound("Invoice", invoice_id)
        if invoice.status not in (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE):
            _raise_for_status(invoice_id, invoice.status, InvoiceStatus.PAID)

        values = {
            "paid_amount": GymInvoice.total_amount,
            "paid_date": get_utc_now(),
            "payment_method": PaymentMethod(payment_method).value,
            "payment_ref": payment_reference,
        }
        if notes is not None:
            values["notes"] = notes

        applied = await transition_invoice(
            db,
            invoice_id,
            {InvoiceStatus.PENDING, InvoiceStatus.OVERDUE},
            InvoiceStatus.PAID,
            values=values,
        )
        if not applied:
            await db.rollback()
            _raise_for_status(invoice_id, await get_invoice_status(db, invoice_id), InvoiceStatus.PAID)

        await db.commit()
        await db.refresh(invoice)
        logger.info(
            "Invoice paid",
            extra={
                "invoice_id": str(invoice_id),
                "invoice_number": invoice.invoice_number,
                "amount": str(invoice.paid_amount),
                "payment_method": invoice.payment_method,
            },
        )
        return invoice

    @staticmethod
    async def cancel_invoice(
        db: AsyncSession,
        invoice_id: UUID,
        notes: Optional[str] = None,
    ) -> GymInvoice:
        """
        Cancel an unpaid invoice. Paid invoices cannot be cancelled.

        Raises:
            NotFound: unknown invoice
            Cancelled: invoice was already cancelled
            InvalidTransition: invoice is paid
        """
        invoice = await InvoiceService.get_invoice_by_id(db, invoice_id)
        if not invoice:
            raise NotFound("Invoice", invoice_id)
        if invoice.status not in (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE):
            _raise_for_status(invoice_id, invoice.status, InvoiceStatus.CANCELLED)

        values = {"notes": notes} if notes is not None else None
        applied = await transition_invoice(
            db,
            invoice_id,
            {InvoiceStatus.PENDING, InvoiceStatus.OVERDUE},
            InvoiceStatus.CANCELLED,
            values=values,
        )
        if not applied:
            await db.rollback()
            _raise_for_status(
                invoice_id, await get_invoice_status(db, invoice_id), InvoiceStatus.CANCELLED
            )

        await db.commit()
        await db.refresh(invoice)
        logger.info(
            "Invoice cancelled",
            extra={"invoice_id": str(invoice_id), "invoice_number": invoice.invoice_number},
        )
        return invoice
