# Overview: Typed business errors raised by the ledger services.

"""
Error taxonomy for ledger operations.

Every error carries a human-readable message, a `details` dict for the
caller, and the HTTP status the thin route layer answers with. Validation
errors are raised before any write; anything raised inside an atomic
procedure rolls the whole transaction back.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for business rule failures."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError):
    """400-level input problem, caught before any write."""


class NotFoundError(LedgerError):
    """Entity absent or not owned by the calling tenant."""

    status_code = 404


class ItemNotFound(NotFoundError):
    """One or more referenced items are missing from the tenant."""


class TenantMismatch(NotFoundError):
    """
    Reference to an entity owned by another tenant.

    Reported as 404 so the response never confirms the entity exists.
    """


class InsufficientStock(LedgerError):
    """Operation would drive Item.quantity below zero."""

    def __init__(
        self,
        message: str,
        *,
        item_id: int | None = None,
        item_name: str | None = None,
        current=None,
        requested=None,
    ):
        details = {}
        if item_id is not None:
            details["item_id"] = item_id
        if item_name is not None:
            details["item_name"] = item_name
        if current is not None:
            details["current"] = str(current)
        if requested is not None:
            details["requested"] = str(requested)
        super().__init__(message, details)
        self.item_id = item_id
        self.current = current
        self.requested = requested


class CannotVoid(LedgerError):
    """A void would reverse more stock than is currently on hand."""


class OverLimit(LedgerError):
    """Payment or refund exceeds what is owed."""


InsufficientBalance = OverLimit


class ConflictError(LedgerError):
    """409-level business rule conflict (e.g. shift already open)."""

    status_code = 409


class ShiftAlreadyOpen(ConflictError):
    """User already holds an OPEN till shift."""


class StateError(LedgerError):
    """Invalid lifecycle transition."""

    status_code = 409
