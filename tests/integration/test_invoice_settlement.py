"""Integration tests: recording payments and cancelling invoices."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from app.core.exceptions import AlreadySettled, Cancelled, InvalidTransition, NotFound
from app.models.enums import InvoiceStatus, PaymentMethod
from app.services.invoice_service import InvoiceService
from app.services.invoice_state import transition_invoice


@pytest.fixture
def pending_invoice(session_factory, make_gym, add_members):
    """Generate one pending invoice (40 members at 75.00) and return its id."""

    async def _pending_invoice(reference_date: date = date(2024, 2, 15)):
        gym = await make_gym(billing_cycle_start=10)
        await add_members(gym.id, 40)
        summary = await InvoiceService.generate_monthly_invoices(session_factory, reference_date)
        return summary.invoices[0].id

    return _pending_invoice


async def _load(session_factory, invoice_id):
    async with session_factory() as db:
        return await InvoiceService.get_invoice_by_id(db, invoice_id)


@pytest.mark.asyncio
async def test_payment_settles_in_full(session_factory, pending_invoice):
    invoice_id = await pending_invoice()

    async with session_factory() as db:
        invoice = await InvoiceService.record_payment(
            db, invoice_id, PaymentMethod.UPI, payment_reference="UTR-001", notes="Paid at desk"
        )

    assert invoice.status == InvoiceStatus.PAID
    assert invoice.paid_amount == Decimal("3000.00")
    assert invoice.paid_date is not None
    assert invoice.payment_method == "upi"
    assert invoice.payment_ref == "UTR-001"
    assert invoice.notes == "Paid at desk"

    stored = await _load(session_factory, invoice_id)
    assert stored.status == InvoiceStatus.PAID
    assert stored.paid_amount == stored.total_amount


@pytest.mark.asyncio
async def test_second_payment_rejected_as_already_settled(session_factory, pending_invoice):
    invoice_id = await pending_invoice()
    async with session_factory() as db:
        await InvoiceService.record_payment(db, invoice_id, PaymentMethod.CASH)

    async with session_factory() as db:
        with pytest.raises(AlreadySettled):
            await InvoiceService.record_payment(db, invoice_id, PaymentMethod.CARD)

    stored = await _load(session_factory, invoice_id)
    assert stored.payment_method == "cash"


@pytest.mark.asyncio
async def test_overdue_invoice_can_be_paid(session_factory, pending_invoice):
    invoice_id = await pending_invoice()
    await InvoiceService.sweep_overdue_invoices(session_factory, date(2024, 3, 11))
    assert (await _load(session_factory, invoice_id)).status == InvoiceStatus.OVERDUE

    async with session_factory() as db:
        invoice = await InvoiceService.record_payment(db, invoice_id, PaymentMethod.BANK_TRANSFER)

    assert invoice.status == InvoiceStatus.PAID
    assert invoice.paid_amount == Decimal("3000.00")


@pytest.mark.asyncio
async def test_payment_on_cancelled_invoice_rejected(session_factory, pending_invoice):
    invoice_id = await pending_invoice()
    async with session_factory() as db:
        await InvoiceService.cancel_invoice(db, invoice_id)

    async with session_factory() as db:
        with pytest.raises(Cancelled):
            await InvoiceService.record_payment(db, invoice_id, PaymentMethod.CASH)

    stored = await _load(session_factory, invoice_id)
    assert stored.status == InvoiceStatus.CANCELLED
    assert stored.paid_amount == Decimal("0")
    assert stored.paid_date is None


@pytest.mark.asyncio
async def test_payment_unknown_invoice(session_factory):
    async with session_factory() as db:
        with pytest.raises(NotFound):
            await InvoiceService.record_payment(db, uuid4(), PaymentMethod.CASH)


@pytest.mark.asyncio
async def test_stale_read_loses_to_concurrent_cancel(session_factory, pending_invoice):
    """A payment that saw the invoice as pending fails once it was cancelled elsewhere."""
    invoice_id = await pending_invoice()

    async with session_factory() as payer:
        seen = await InvoiceService.get_invoice_by_id(payer, invoice_id)
        assert seen.status == InvoiceStatus.PENDING
        await payer.commit()

        async with session_factory() as admin:
            await InvoiceService.cancel_invoice(admin, invoice_id, notes="Gym closed")

        with pytest.raises(Cancelled):
            await InvoiceService.record_payment(payer, invoice_id, PaymentMethod.CASH)

    stored = await _load(session_factory, invoice_id)
    assert stored.status == InvoiceStatus.CANCELLED
    assert stored.paid_amount == Decimal("0")


@pytest.mark.asyncio
async def test_guarded_update_skips_settled_invoice(session_factory, pending_invoice):
    """The sweep's pending->overdue update does not match a paid invoice."""
    invoice_id = await pending_invoice()
    async with session_factory() as db:
        await InvoiceService.record_payment(db, invoice_id, PaymentMethod.CASH)

    async with session_factory() as db:
        applied = await transition_invoice(
            db, invoice_id, {InvoiceStatus.PENDING}, InvoiceStatus.OVERDUE
        )
        await db.commit()

    assert applied is False
    assert (await _load(session_factory, invoice_id)).status == InvoiceStatus.PAID


@pytest.mark.asyncio
async def test_cancel_pending_invoice(session_factory, pending_invoice):
    invoice_id = await pending_invoice()

    async with session_factory() as db:
        invoice = await InvoiceService.cancel_invoice(db, invoice_id, notes="Duplicate tenant")

    assert invoice.status == InvoiceStatus.CANCELLED
    assert invoice.notes == "Duplicate tenant"
    assert invoice.paid_amount == Decimal("0")


@pytest.mark.asyncio
async def test_cancel_overdue_invoice(session_factory, pending_invoice):
    invoice_id = await pending_invoice()
    await InvoiceService.sweep_overdue_invoices(session_factory, date(2024, 4, 1))

    async with session_factory() as db:
        invoice = await InvoiceService.cancel_invoice(db, invoice_id)

    assert invoice.status == InvoiceStatus.CANCELLED


@pytest.mark.asyncio
async def test_paid_invoice_cannot_be_cancelled(session_factory, pending_invoice):
    invoice_id = await pending_invoice()
    async with session_factory() as db:
        await InvoiceService.record_payment(db, invoice_id, PaymentMethod.CASH)

    async with session_factory() as db:
        with pytest.raises(InvalidTransition) as exc_info:
            await InvoiceService.cancel_invoice(db, invoice_id)

    assert not isinstance(exc_info.value, AlreadySettled)
    assert (await _load(session_factory, invoice_id)).status == InvoiceStatus.PAID


@pytest.mark.asyncio
async def test_cancel_twice_rejected(session_factory, pending_invoice):
    invoice_id = await pending_invoice()
    async with session_factory() as db:
        await InvoiceService.cancel_invoice(db, invoice_id)

    async with session_factory() as db:
        with pytest.raises(Cancelled):
            await InvoiceService.cancel_invoice(db, invoice_id)
