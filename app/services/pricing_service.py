"""Pricing Service - tenant billing profile updates"""

from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConfigurationError, NotFound
from app.core.logging import get_logger
from app.models.enums import PricingPlanType
from app.models.tenant import Gym
from app.utils.time import get_utc_now

logger = get_logger(__name__)


class PricingService:
    """Service layer for a gym's billing profile"""

    @staticmethod
    def validate_pricing(rate_per_member, billing_cycle_start) -> Decimal:
        """
        Check a billing profile and return the rate as a Decimal.

        Raises:
            ConfigurationError: if the rate is missing or not positive, or the
                cycle day is not one of the allowed billing days
        """
        if rate_per_member is None:
            raise ConfigurationError("Rate per member is not configured")
        try:
            rate = Decimal(str(rate_per_member))
        except (InvalidOperation, ValueError):
            raise ConfigurationError(f"Rate per member {rate_per_member!r} is not a number")
        if not rate.is_finite() or rate <= 0:
            raise ConfigurationError(f"Rate per member must be greater than 0, got {rate}")
        if billing_cycle_start not in settings.ALLOWED_BILLING_CYCLE_DAYS:
            raise ConfigurationError(
                f"Billing cycle day must be one of {settings.ALLOWED_BILLING_CYCLE_DAYS}, "
                f"got {billing_cycle_start}"
            )
        return rate

    @staticmethod
    async def update_tenant_pricing(
        db: AsyncSession,
        gym_id: UUID,
        pricing_plan_type: PricingPlanType,
        rate_per_member: Optional[Decimal],
        billing_cycle_start: int,
    ) -> Gym:
        """
        Overwrite a gym's billing profile.

        Existing invoices keep the rate they were generated with; the new
        profile applies from the next invoice run onwards.
        Standard plans without an explicit rate use the platform rate.
        """
        if rate_per_member is None and pricing_plan_type == PricingPlanType.STANDARD:
            rate_per_member = settings.STANDARD_RATE_PER_MEMBER
        rate = PricingService.validate_pricing(rate_per_member, billing_cycle_start)

        gym = await db.get(Gym, gym_id)
        if not gym:
            raise NotFound("Gym", gym_id)

        previous_rate = gym.rate_per_member
        gym.pricing_plan_type = pricing_plan_type
        gym.rate_per_member = rate
        gym.billing_cycle_start = billing_cycle_start
        gym.pricing_updated_at = get_utc_now()

        await db.commit()
        await db.refresh(gym)

        logger.info(
            "Gym pricing updated",
            extra={
                "gym_id": str(gym_id),
                "pricing_plan_type": pricing_plan_type.value,
                "previous_rate": str(previous_rate),
                "rate_per_member": str(rate),
                "billing_cycle_start": billing_cycle_start,
            },
        )
        return gym
