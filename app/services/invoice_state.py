"""Invoice status transitions.

Every transition is written as a compare-and-swap UPDATE guarded by the
status the caller observed, so a sweep and a payment racing on the same
invoice cannot both win.
"""

from typing import Any, Dict, Iterable, Optional, Set
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidTransition, NotFound
from app.core.logging import get_logger
from app.models.billing import GymInvoice
from app.models.enums import InvoiceStatus
from app.utils.time import get_utc_now

logger = get_logger(__name__)


class InvoiceStateMachine:
    """Allowed gym invoice transitions; paid and cancelled are terminal."""

    TRANSITIONS: Dict[InvoiceStatus, Set[InvoiceStatus]] = {
        InvoiceStatus.PENDING: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED},
        InvoiceStatus.OVERDUE: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
        InvoiceStatus.PAID: set(),
        InvoiceStatus.CANCELLED: set(),
    }

    @classmethod
    def can_transition(cls, current: InvoiceStatus, target: InvoiceStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def assert_transition(cls, current: InvoiceStatus, target: InvoiceStatus) -> None:
        if not cls.can_transition(current, target):
            raise InvalidTransition(current.value, target.value)

    @classmethod
    def sources_for(cls, target: InvoiceStatus) -> Set[InvoiceStatus]:
        """Statuses from which ``target`` may be reached"""
        return {source for source, targets in cls.TRANSITIONS.items() if target in targets}

    @classmethod
    def is_terminal(cls, status: InvoiceStatus) -> bool:
        return not cls.TRANSITIONS.get(status)


async def transition_invoice(
    db: AsyncSession,
    invoice_id: UUID,
    expected: Iterable[InvoiceStatus],
    target: InvoiceStatus,
    values: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Conditionally move an invoice to ``target``.

    The UPDATE only matches while the row is still in one of the ``expected``
    statuses. Does not commit.

    Args:
        db: Database session
        invoice_id: Invoice to transition
        expected: Statuses the caller observed / requires
        target: New status
        values: Extra columns to write in the same statement

    Returns:
        True if the row was updated, False if the precondition was stale
    """
    expected = set(expected)
    for source in expected:
        InvoiceStateMachine.assert_transition(source, target)

    stmt = (
        update(GymInvoice)
        .where(
            GymInvoice.id == invoice_id,
            GymInvoice.status.in_(expected),
        )
        .values(status=target, updated_at=get_utc_now(), **(values or {}))
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    applied = result.rowcount == 1
    if not applied:
        logger.info(
            "Invoice transition precondition not met",
            extra={
                "invoice_id": str(invoice_id),
                "expected": sorted(s.value for s in expected),
                "target": target.value,
            },
        )
    return applied


async def get_invoice_status(db: AsyncSession, invoice_id: UUID) -> InvoiceStatus:
    """Current persisted status, bypassing the identity map"""
    status = await db.scalar(
        select(GymInvoice.status)
        .where(GymInvoice.id == invoice_id)
        .execution_options(populate_existing=True)
    )
    if status is None:
        raise NotFound("Invoice", invoice_id)
    return status
