"""Unit tests for PricingService and invoice profile validation."""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import AlreadyExists, ConfigurationError, NotFound
from app.models.enums import PricingPlanType
from app.models.tenant import Gym
from app.services.invoice_service import InvoiceService
from app.services.pricing_service import PricingService


def test_validate_pricing_returns_decimal_rate():
    assert PricingService.validate_pricing("75", 1) == Decimal("75")
    assert PricingService.validate_pricing(Decimal("49.50"), 15) == Decimal("49.50")


@pytest.mark.parametrize("rate", [0, "0.00", -10, None, "abc"])
def test_validate_pricing_rejects_bad_rate(rate):
    with pytest.raises(ConfigurationError):
        PricingService.validate_pricing(rate, 1)


@pytest.mark.parametrize("day", [2, 20, 31, 0])
def test_validate_pricing_rejects_unsupported_cycle_day(day):
    with pytest.raises(ConfigurationError):
        PricingService.validate_pricing("75", day)


@pytest.mark.asyncio
async def test_update_pricing_overwrites_profile():
    db = AsyncMock(spec=AsyncSession)
    gym_id = uuid4()
    gym = Gym(
        id=gym_id,
        name="Flex Hub",
        pricing_plan_type=PricingPlanType.STANDARD,
        rate_per_member=Decimal("75"),
        billing_cycle_start=1,
    )
    db.get.return_value = gym

    result = await PricingService.update_tenant_pricing(
        db, gym_id, PricingPlanType.CUSTOM, Decimal("100"), 10
    )

    assert result is gym
    assert gym.pricing_plan_type == PricingPlanType.CUSTOM
    assert gym.rate_per_member == Decimal("100")
    assert gym.billing_cycle_start == 10
    assert gym.pricing_updated_at is not None
    assert db.commit.called


@pytest.mark.asyncio
async def test_update_pricing_standard_without_rate_uses_platform_rate():
    db = AsyncMock(spec=AsyncSession)
    gym = Gym(id=uuid4(), name="Flex Hub", rate_per_member=Decimal("120"), billing_cycle_start=1)
    db.get.return_value = gym

    await PricingService.update_tenant_pricing(db, gym.id, PricingPlanType.STANDARD, None, 5)

    assert gym.rate_per_member == settings.STANDARD_RATE_PER_MEMBER


@pytest.mark.asyncio
async def test_update_pricing_custom_requires_rate():
    db = AsyncMock(spec=AsyncSession)

    with pytest.raises(ConfigurationError):
        await PricingService.update_tenant_pricing(db, uuid4(), PricingPlanType.CUSTOM, None, 5)

    assert not db.get.called
    assert not db.commit.called


@pytest.mark.asyncio
async def test_update_pricing_invalid_rate_rejected_before_lookup():
    db = AsyncMock(spec=AsyncSession)

    with pytest.raises(ConfigurationError):
        await PricingService.update_tenant_pricing(db, uuid4(), PricingPlanType.CUSTOM, Decimal("0"), 1)

    assert not db.get.called


@pytest.mark.asyncio
async def test_update_pricing_unknown_gym():
    db = AsyncMock(spec=AsyncSession)
    db.get.return_value = None

    with pytest.raises(NotFound):
        await PricingService.update_tenant_pricing(db, uuid4(), PricingPlanType.CUSTOM, Decimal("80"), 1)

    assert not db.commit.called


@pytest.mark.asyncio
async def test_misconfigured_gym_fails_before_census_and_insert():
    db = AsyncMock(spec=AsyncSession)
    no_invoice = MagicMock()
    no_invoice.scalar_one_or_none.return_value = None
    db.execute.return_value = no_invoice
    gym = Gym(id=uuid4(), name="Broken Gym", rate_per_member=Decimal("0"), billing_cycle_start=1)

    with pytest.raises(ConfigurationError):
        await InvoiceService.create_invoice_for_gym(db, gym, date(2024, 2, 1))

    assert db.execute.await_count == 1
    assert not db.scalar.called
    assert not db.add.called


@pytest.mark.asyncio
async def test_existing_invoice_reported_before_profile_validation():
    db = AsyncMock(spec=AsyncSession)
    found = MagicMock()
    found.scalar_one_or_none.return_value = MagicMock()
    db.execute.return_value = found
    gym = Gym(id=uuid4(), name="Broken Gym", rate_per_member=Decimal("0"), billing_cycle_start=20)

    with pytest.raises(AlreadyExists):
        await InvoiceService.create_invoice_for_gym(db, gym, date(2024, 2, 1))

    assert not db.add.called
