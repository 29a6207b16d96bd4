from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID
from datetime import date

from app.api import deps
from app.services.gym_service import GymService
from app.services.pricing_service import PricingService
from app.schemas.billing import GymBillingOverview, GymPricingResponse, PricingUpdate
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.get("", response_model=SuccessResponse[List[GymBillingOverview]])
async def get_gym_billing_overview(
    limit: Optional[int] = Query(None, ge=1, le=100),
    reference_date: date = Depends(deps.get_reference_date),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Projected monthly billing per gym, highest first. Use ``limit`` for top gyms.
    """
    overview = await GymService.billing_overview(db, reference_date, limit)
    return SuccessResponse(data=overview)


@router.patch("/{gym_id}/pricing", response_model=SuccessResponse[GymPricingResponse])
async def update_gym_pricing(
    gym_id: UUID,
    pricing_in: PricingUpdate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Change a gym's plan, rate or billing day. Applies from the next invoice run.
    """
    gym = await PricingService.update_tenant_pricing(
        db,
        gym_id,
        pricing_plan_type=pricing_in.pricing_plan_type,
        rate_per_member=pricing_in.rate_per_member,
        billing_cycle_start=pricing_in.billing_cycle_start,
    )
    return SuccessResponse(data=gym, message="Pricing updated successfully")
