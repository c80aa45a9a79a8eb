"""
Ledger exceptions.

Categorized exception types; each category maps to one handling strategy:
client faults and business rejections never touch the store, atomic unit
failures are rolled back, batch item failures are collected by the caller.
"""

from decimal import Decimal


class LedgerError(Exception):
    """Base class for all ledger errors."""


class ValidationError(LedgerError):
    """Missing or malformed input. No mutation was attempted."""

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(LedgerError):
    """Referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class BusinessRuleError(LedgerError):
    """Request rejected by a business rule. No mutation was applied."""


class InsufficientFundsError(BusinessRuleError):
    """Debit would take the balance below zero."""

    def __init__(self, account_id: int, balance: Decimal, requested: Decimal) -> None:
        super().__init__(
            f"Insufficient balance: current {balance} KZ, required {requested} KZ"
        )
        self.account_id = account_id
        self.balance = balance
        self.requested = requested


class AlreadyProcessedError(BusinessRuleError):
    """Deposit, withdrawal or purchase is no longer in a processable state."""


class DuplicateCollectionError(BusinessRuleError):
    """Income or check-in already collected in the current window."""


class AtomicUnitError(LedgerError):
    """Store timeout, conflict or driver failure inside an atomic unit."""


class AuthorizationError(LedgerError):
    """Principal is not allowed to perform the operation."""


class PayoutEngineError(LedgerError):
    """The payout batch as a whole could not run."""
