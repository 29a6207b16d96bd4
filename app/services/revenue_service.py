"""Revenue Service - monthly rollups derived from gym invoice history"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.logging import get_logger
from app.models.billing import GymInvoice, RevenueSnapshot
from app.models.enums import InvoiceStatus, PricingPlanType
from app.models.tenant import Gym
from app.schemas.billing import RevenueAnalytics, RevenueSnapshotData
from app.services.billing_cycle import previous_period, trailing_periods
from app.utils.time import get_utc_today

logger = get_logger(__name__)

CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    # SUM over NUMERIC comes back as Decimal on Postgres and float on SQLite
    return Decimal(str(value or 0)).quantize(CENTS)


def trend_percentage(current, previous) -> float:
    """
    Period-over-period change in percent, rounded to 2 places.
    Defined as 0 when there is nothing to compare against.
    """
    current = Decimal(str(current or 0))
    previous = Decimal(str(previous or 0))
    if previous == 0:
        return 0.0
    return round(float((current - previous) / previous * 100), 2)


class RevenueService:
    """
    Read-only revenue projections.

    Snapshots are always recomputed from invoices; stored snapshot rows are
    an append-only history and never feed back into the calculation.
    """

    @staticmethod
    async def compute_revenue_snapshot(db: AsyncSession, month: int, year: int) -> RevenueSnapshotData:
        """
        Roll up one billing period.

        Cancelled invoices are excluded. Plan breakdown uses each gym's
        current pricing plan.
        """
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")

        stmt = (
            select(
                Gym.pricing_plan_type,
                func.count(func.distinct(GymInvoice.gym_id)),
                func.coalesce(func.sum(GymInvoice.active_members), 0),
                func.coalesce(func.sum(GymInvoice.total_amount), 0),
                func.coalesce(func.sum(GymInvoice.paid_amount), 0),
            )
            .select_from(GymInvoice)
            .join(Gym, Gym.id == GymInvoice.gym_id)
            .where(
                GymInvoice.month == month,
                GymInvoice.year == year,
                GymInvoice.status != InvoiceStatus.CANCELLED,
            )
            .group_by(Gym.pricing_plan_type)
        )
        result = await db.execute(stmt)

        active_gyms = 0
        total_members = 0
        paid_amount = Decimal("0")
        revenue_by_plan = {plan: Decimal("0") for plan in PricingPlanType}
        for plan_type, gyms, members, revenue, paid in result.all():
            active_gyms += int(gyms or 0)
            total_members += int(members or 0)
            revenue_by_plan[PricingPlanType(plan_type)] += _money(revenue)
            paid_amount += _money(paid)

        # Gyms on the platform by the end of the period
        period_end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        total_gyms = await db.scalar(
            select(func.count(Gym.id)).where(Gym.created_at < period_end)
        )

        total_revenue = sum(revenue_by_plan.values(), Decimal("0"))
        return RevenueSnapshotData(
            month=month,
            year=year,
            total_gyms=total_gyms or 0,
            active_gyms=active_gyms,
            total_members=total_members,
            total_revenue=total_revenue,
            standard_plan_revenue=revenue_by_plan[PricingPlanType.STANDARD],
            custom_plan_revenue=revenue_by_plan[PricingPlanType.CUSTOM],
            paid_amount=paid_amount,
            pending_amount=total_revenue - paid_amount,
        )

    @staticmethod
    async def revenue_analytics(
        db: AsyncSession,
        reference_date: Optional[date] = None,
        months: Optional[int] = None,
    ) -> RevenueAnalytics:
        """Current period snapshot, trend vs. the prior period and trailing history"""
        reference_date = reference_date or get_utc_today()
        months = max(months or settings.REVENUE_TREND_MONTHS, 1)
        month, year = reference_date.month, reference_date.year

        trailing = [
            await RevenueService.compute_revenue_snapshot(db, m, y)
            for m, y in trailing_periods(month, year, months)
        ]
        current = trailing[-1]
        if len(trailing) > 1:
            previous = trailing[-2]
        else:
            previous = await RevenueService.compute_revenue_snapshot(db, *previous_period(month, year))

        return RevenueAnalytics(
            month=month,
            year=year,
            current=current,
            previous=previous,
            revenue_trend=trend_percentage(current.total_revenue, previous.total_revenue),
            member_trend=trend_percentage(current.total_members, previous.total_members),
            trailing=trailing,
        )

    @staticmethod
    async def record_revenue_snapshot(db: AsyncSession, month: int, year: int) -> RevenueSnapshot:
        """Close a period: append a freshly computed snapshot row"""
        data = await RevenueService.compute_revenue_snapshot(db, month, year)
        snapshot = RevenueSnapshot(**data.model_dump())
        db.add(snapshot)
        await db.commit()
        await db.refresh(snapshot)

        logger.info(
            "Revenue snapshot recorded",
            extra={
                "month": month,
                "year": year,
                "total_revenue": str(snapshot.total_revenue),
                "pending_amount": str(snapshot.pending_amount),
            },
        )
        return snapshot

    @staticmethod
    async def list_revenue_snapshots(
        db: AsyncSession,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> List[RevenueSnapshot]:
        stmt = select(RevenueSnapshot)
        if month is not None:
            stmt = stmt.where(RevenueSnapshot.month == month)
        if year is not None:
            stmt = stmt.where(RevenueSnapshot.year == year)
        stmt = stmt.order_by(desc(RevenueSnapshot.created_at))
        result = await db.execute(stmt)
        return list(result.scalars().all())
