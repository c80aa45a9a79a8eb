"""
Input validators.

Tuple-returning primitives in ``common`` and pydantic request models in
``requests``.
"""

from yieldledger.validators.common import (
    validate_amount,
    validate_iban,
    validate_mobile,
)
from yieldledger.validators.requests import (
    AmountRequest,
    BankAccountRequest,
    BankDetails,
    BulkBalanceRequest,
    BulkOperation,
    DepositRequest,
    GrantProductRequest,
    PurchaseRequest,
    RegistrationRequest,
    RejectionRequest,
    SetBalanceRequest,
    WithdrawalRequest,
    parse_request,
    to_validation_error,
)


__all__ = [
    "AmountRequest",
    "BankAccountRequest",
    "BankDetails",
    "BulkBalanceRequest",
    "BulkOperation",
    "DepositRequest",
    "GrantProductRequest",
    "PurchaseRequest",
    "RegistrationRequest",
    "RejectionRequest",
    "SetBalanceRequest",
    "WithdrawalRequest",
    "parse_request",
    "to_validation_error",
    "validate_amount",
    "validate_iban",
    "validate_mobile",
]
