"""Integration tests: batch runs with several workers and overlapping runs."""

import asyncio

import pytest
from datetime import date

from sqlalchemy import select, func

from app.models.billing import GymInvoice
from app.models.enums import InvoiceStatus
from app.services.invoice_service import InvoiceService

GYM_COUNT = 8


@pytest.fixture
def many_gyms(make_gym, add_members):
    async def _many_gyms():
        gyms = []
        for i in range(GYM_COUNT):
            gym = await make_gym(name=f"Gym {i}", billing_cycle_start=10)
            await add_members(gym.id, i + 1)
            gyms.append(gym)
        return gyms

    return _many_gyms


async def _invoices_per_gym(session_factory):
    async with session_factory() as db:
        result = await db.execute(
            select(GymInvoice.gym_id, func.count(GymInvoice.id)).group_by(GymInvoice.gym_id)
        )
        return dict(result.all())


@pytest.mark.asyncio
async def test_single_run_with_worker_pool_bills_every_gym(session_factory, many_gyms):
    gyms = await many_gyms()

    summary = await InvoiceService.generate_monthly_invoices(
        session_factory, date(2024, 2, 15), max_workers=4
    )

    assert summary.failed == []
    assert summary.created == GYM_COUNT
    assert await _invoices_per_gym(session_factory) == {gym.id: 1 for gym in gyms}


@pytest.mark.asyncio
async def test_overlapping_runs_create_one_invoice_per_gym(session_factory, many_gyms):
    gyms = await many_gyms()

    first, second = await asyncio.gather(
        InvoiceService.generate_monthly_invoices(session_factory, date(2024, 2, 15), max_workers=4),
        InvoiceService.generate_monthly_invoices(session_factory, date(2024, 2, 15), max_workers=4),
    )

    assert first.failed == []
    assert second.failed == []
    assert first.created + second.created == GYM_COUNT
    assert first.skipped + second.skipped == GYM_COUNT
    assert await _invoices_per_gym(session_factory) == {gym.id: 1 for gym in gyms}


@pytest.mark.asyncio
async def test_overlapping_sweeps_flag_each_invoice_once(session_factory, many_gyms):
    await many_gyms()
    await InvoiceService.generate_monthly_invoices(session_factory, date(2024, 2, 15), max_workers=4)

    first, second = await asyncio.gather(
        InvoiceService.sweep_overdue_invoices(session_factory, date(2024, 3, 11), max_workers=4),
        InvoiceService.sweep_overdue_invoices(session_factory, date(2024, 3, 11), max_workers=4),
    )

    assert first.failed == []
    assert second.failed == []
    assert first.transitioned + second.transitioned == GYM_COUNT

    async with session_factory() as db:
        statuses = (await db.execute(select(GymInvoice.status))).scalars().all()
    assert len(statuses) == GYM_COUNT
    assert set(statuses) == {InvoiceStatus.OVERDUE}
