"""Integration tests: tenant billing overview."""

import pytest
from datetime import date
from decimal import Decimal

from app.services.gym_service import GymService
from app.services.invoice_service import InvoiceService


@pytest.mark.asyncio
async def test_latest_invoice_per_gym(session_factory, make_gym, add_members):
    billed = await make_gym(name="Billed Gym")
    empty = await make_gym(name="Empty Gym")
    await add_members(billed.id, 3)
    await InvoiceService.generate_monthly_invoices(session_factory, date(2023, 12, 15))
    await InvoiceService.generate_monthly_invoices(session_factory, date(2024, 1, 15))
    unbilled = await make_gym(name="Unbilled Gym")

    async with session_factory() as db:
        latest = await InvoiceService.get_latest_invoices_by_gym(
            db, [billed.id, empty.id, unbilled.id]
        )
        none = await InvoiceService.get_latest_invoices_by_gym(db, [])

    assert (latest[billed.id].month, latest[billed.id].year) == (1, 2024)
    assert (latest[empty.id].month, latest[empty.id].year) == (1, 2024)
    assert unbilled.id not in latest
    assert none == {}


@pytest.mark.asyncio
async def test_overview_sorted_by_projected_billing(session_factory, make_gym, add_members):
    small = await make_gym(name="Small Gym")
    big = await make_gym(name="Big Gym", rate_per_member="100.00")
    empty = await make_gym(name="Empty Gym")
    await add_members(small.id, 2)
    await add_members(big.id, 5)
    await InvoiceService.generate_monthly_invoices(session_factory, date(2024, 1, 15))
    await InvoiceService.generate_monthly_invoices(session_factory, date(2024, 2, 15))

    later = await make_gym(name="Later Gym")

    async with session_factory() as db:
        overview = await GymService.billing_overview(db, date(2024, 2, 20))

    rows = {row.id: row for row in overview}
    assert overview[0].id == big.id
    assert overview[0].monthly_billing == Decimal("500.00")
    assert rows[small.id].monthly_billing == Decimal("150.00")
    assert rows[small.id].last_invoice.amount == Decimal("150.00")
    assert rows[big.id].last_invoice.invoice_number.startswith("GS-202402-")
    assert rows[empty.id].last_invoice is not None
    assert rows[later.id].last_invoice is None
    assert rows[later.id].monthly_billing == Decimal("0.00")
