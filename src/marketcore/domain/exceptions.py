"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI and api layers can catch them uniformly and turn them into
user-facing messages.  Each class carries a machine-readable ``reason``.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""

    reason = "error"


class ValidationError(DomainException):
    """One or more fields are invalid.

    ``errors`` maps a field path (``items.0.quantity``) to a message.
    A bare message without a field is stored under ``_``.
    """

    reason = "validation_failed"

    def __init__(self, message: str = "Validation failed", errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors = dict(errors) if errors else {"_": message}


class NotFoundError(DomainException):
    """A requested entity does not exist."""

    reason = "not_found"


class ForbiddenError(DomainException):
    """The requester does not own the resource it is acting on."""

    reason = "forbidden"


class ConflictError(DomainException):
    """The request conflicts with the current state of the system."""

    reason = "conflict"


class InsufficientStockError(ConflictError):
    reason = "insufficient_stock"

    def __init__(self, sku: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for {sku} (need {requested}, have {available} available)"
        )
        self.sku = sku
        self.requested = requested
        self.available = available


class InvalidTransitionError(ConflictError):
    reason = "invalid_transition"

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot transition order from {current} to {target}")
        self.current = current
        self.target = target


class IdempotencyConflictError(ConflictError):
    reason = "idempotency_conflict"

    def __init__(self, key: str) -> None:
        super().__init__("duplicate idempotency key with different payload")
        self.key = key


class InsufficientBalanceError(ConflictError):
    reason = "insufficient_balance"


class InvalidAmountError(ConflictError):
    reason = "invalid_amount"


class PayoutExceedsEarningsError(ConflictError):
    """A refund would take back earnings that were already paid out."""

    reason = "payout_exceeds_earnings"


class ConcurrentUpdateError(ConflictError):
    """Another request changed the entity between our read and our write."""

    reason = "concurrent_update"


class InternalError(DomainException):
    """Storage or transaction failure; nothing was persisted."""

    reason = "internal_error"


class TransientStorageError(InternalError):
    """Lock timeout, deadlock or serialization failure. Safe to retry."""

    reason = "transient_storage_error"


class DuplicateKeyError(InternalError):
    """A unique constraint rejected an insert (e.g. idempotency key race)."""

    reason = "duplicate_key"
