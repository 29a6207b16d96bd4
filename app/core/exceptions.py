"""Billing error taxonomy.

Every error carries a stable ``code`` used in the API error envelope.
Batch operations catch these per tenant/invoice and report them in their
summaries; single-unit operations let them propagate to the caller.
"""

from typing import Optional
from uuid import UUID


class BillingError(Exception):
    """Base exception for the billing engine."""

    code = "BILLING_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(BillingError):
    """Raised when a tenant's pricing profile is invalid or missing."""

    code = "INVALID_BILLING_CONFIGURATION"


class AlreadyExists(BillingError):
    """Raised when an invoice already exists for a tenant and period."""

    code = "INVOICE_ALREADY_EXISTS"

    def __init__(self, gym_id: UUID, month: int, year: int):
        super().__init__(f"Invoice already exists for gym {gym_id} in {month:02d}/{year}")
        self.gym_id = gym_id
        self.month = month
        self.year = year


class InvalidTransition(BillingError):
    """Raised when an invoice status change is not allowed, or lost a race."""

    code = "INVALID_TRANSITION"

    def __init__(self, current: Optional[str], target: str, message: Optional[str] = None):
        super().__init__(message or f"Transition not allowed: {current} -> {target}")
        self.current = current
        self.target = target


class AlreadySettled(InvalidTransition):
    """Raised when recording a payment against an invoice that is already paid."""

    code = "INVOICE_ALREADY_SETTLED"

    def __init__(self, invoice_id: UUID):
        super().__init__("paid", "paid", f"Invoice {invoice_id} is already paid")
        self.invoice_id = invoice_id


class Cancelled(InvalidTransition):
    """Raised when acting on an invoice that has been cancelled."""

    code = "INVOICE_CANCELLED"

    def __init__(self, invoice_id: UUID, target: str = "paid"):
        super().__init__("cancelled", target, f"Invoice {invoice_id} is cancelled")
        self.invoice_id = invoice_id


class NotFound(BillingError):
    """Raised when an invoice or tenant id is unknown."""

    code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, resource_id):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id
