"""Gym Service - tenant directory reads and billing overview"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tenant import Gym
from app.schemas.billing import GymBillingOverview, InvoiceSummary
from app.services.billing_cycle import next_invoice_date
from app.services.invoice_service import InvoiceService
from app.services.member_census import MemberCensus
from app.utils.time import get_utc_today


class GymService:
    """Service layer for Gym operations"""

    @staticmethod
    async def billing_overview(
        db: AsyncSession,
        reference_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[GymBillingOverview]:
        """
        Projected monthly billing per gym, highest first.

        Uses the live member count and current rate, so figures are an
        estimate of the next invoice, not a record of past ones.
        """
        reference_date = reference_date or get_utc_today()
        result = await db.execute(select(Gym).order_by(Gym.name))
        gyms = list(result.scalars().all())
        gym_ids = [gym.id for gym in gyms]
        counts = await MemberCensus.count_active_members_by_gym(db, gym_ids, reference_date)
        latest_invoices = await InvoiceService.get_latest_invoices_by_gym(db, gym_ids)

        overview = []
        for gym in gyms:
            rate = Decimal(str(gym.rate_per_member))
            members = counts.get(gym.id, 0)
            latest = latest_invoices.get(gym.id)
            overview.append(GymBillingOverview(
                id=gym.id,
                name=gym.name,
                owner=gym.owner,
                email=gym.email,
                status=gym.status,
                pricing_plan_type=gym.pricing_plan_type,
                active_members=members,
                rate_per_member=rate,
                monthly_billing=(rate * members).quantize(Decimal("0.01")),
                billing_cycle_start=gym.billing_cycle_start,
                next_invoice_date=next_invoice_date(reference_date, gym.billing_cycle_start),
                last_invoice=InvoiceSummary(
                    id=latest.id,
                    invoice_number=latest.invoice_number,
                    status=latest.status,
                    amount=latest.total_amount,
                ) if latest else None,
            ))

        overview.sort(key=lambda row: row.monthly_billing, reverse=True)
        if limit is not None:
            overview = overview[:limit]
        return overview
