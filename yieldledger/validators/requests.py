"""
Request models.

One explicit, validated input struct per operation. Unknown fields are
rejected before any mutation starts.
"""

from decimal import Decimal
from typing import Annotated, Literal, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from yieldledger.config.business_constants import (
    DEFAULT_CYCLE_DAYS,
    DEFAULT_DAILY_RETURN,
    MAX_CYCLE_DAYS,
)
from yieldledger.utils.exceptions import ValidationError
from yieldledger.validators.common import validate_amount, validate_iban, validate_mobile


RequestModel = TypeVar("RequestModel", bound=BaseModel)


class StrictRequest(BaseModel):
    """Base for request models."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)


def _amount(value: object, *, allow_zero: bool = False) -> Decimal:
    if allow_zero and value is not None and not isinstance(value, bool):
        try:
            if Decimal(str(value)) == 0:
                return Decimal("0")
        except ArithmeticError:
            pass
    is_valid, parsed, error = validate_amount(value)
    if not is_valid:
        raise ValueError(error)
    return parsed


class RegistrationRequest(StrictRequest):
    """Account registration."""

    mobile: str
    invitation_code: str | None = Field(default=None, max_length=16)

    @field_validator("mobile")
    @classmethod
    def check_mobile(cls, v: str) -> str:
        is_valid, normalized, error = validate_mobile(v)
        if not is_valid:
            raise ValueError(error)
        return normalized

    @field_validator("invitation_code")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip().upper()


class PurchaseRequest(StrictRequest):
    """Product purchase."""

    product_id: str = Field(min_length=1, max_length=64)
    product_name: str = Field(min_length=1, max_length=255)
    amount: Decimal
    daily_return: Decimal = DEFAULT_DAILY_RETURN
    cycle_days: int = Field(default=DEFAULT_CYCLE_DAYS, gt=0, le=MAX_CYCLE_DAYS)
    quantity: int = Field(default=1, gt=0)

    @field_validator("amount", "daily_return", mode="before")
    @classmethod
    def check_amounts(cls, v: object) -> Decimal:
        return _amount(v)


class GrantProductRequest(StrictRequest):
    """Admin gift of a product, no debit."""

    product_name: str = Field(min_length=1, max_length=255)
    amount: Decimal = Decimal("0")
    daily_return: Decimal
    cycle_days: int = Field(default=DEFAULT_CYCLE_DAYS, gt=0, le=MAX_CYCLE_DAYS)

    @field_validator("daily_return", mode="before")
    @classmethod
    def check_daily_return(cls, v: object) -> Decimal:
        return _amount(v)

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, v: object) -> Decimal:
        return _amount(v, allow_zero=True)


class BankDetails(StrictRequest):
    """Bank account fields shared by deposits and withdrawals."""

    account_name: str = Field(min_length=1, max_length=255)
    iban: str
    bank_name: str = Field(min_length=1, max_length=255)
    bank_code: str | None = Field(default=None, max_length=32)

    @field_validator("iban")
    @classmethod
    def check_iban(cls, v: str) -> str:
        is_valid, cleaned, error = validate_iban(v)
        if not is_valid:
            raise ValueError(error)
        return cleaned


class BankAccountRequest(StrictRequest):
    """Saved payout bank account. All fields are required."""

    bank_name: str = Field(min_length=1, max_length=255)
    account_holder: str = Field(min_length=1, max_length=255)
    account_number: str
    branch_code: str = Field(min_length=1, max_length=32)

    @field_validator("account_number")
    @classmethod
    def check_account_number(cls, v: str) -> str:
        is_valid, cleaned, error = validate_iban(v)
        if not is_valid:
            raise ValueError(error)
        return cleaned


class DepositRequest(BankDetails):
    """Bank deposit request. Minimum amount is enforced by the service."""

    amount: Decimal

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, v: object) -> Decimal:
        return _amount(v)


class WithdrawalRequest(BankDetails):
    """Bank withdrawal request. ``amount`` is the gross debit."""

    amount: Decimal
    tax: Decimal = Decimal("0")

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, v: object) -> Decimal:
        return _amount(v)

    @field_validator("tax", mode="before")
    @classmethod
    def check_tax(cls, v: object) -> Decimal:
        return _amount(v, allow_zero=True)

    @model_validator(mode="after")
    def check_tax_bound(self) -> "WithdrawalRequest":
        if self.tax >= self.amount:
            raise ValueError("Tax must be lower than the withdrawal amount")
        return self

    @property
    def net_amount(self) -> Decimal:
        """Amount paid out after tax."""
        return self.amount - self.tax


class AmountRequest(StrictRequest):
    """Admin add/deduct request."""

    amount: Decimal
    reason: str | None = Field(default=None, max_length=255)

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, v: object) -> Decimal:
        return _amount(v)


class SetBalanceRequest(StrictRequest):
    """Admin set-balance request. Zero is a valid target."""

    new_balance: Decimal
    reason: str | None = Field(default=None, max_length=255)

    @field_validator("new_balance", mode="before")
    @classmethod
    def check_new_balance(cls, v: object) -> Decimal:
        return _amount(v, allow_zero=True)


class RejectionRequest(StrictRequest):
    """Reason attached to a rejected deposit or withdrawal."""

    reason: str | None = Field(default=None, max_length=255)


class BulkOperation(StrictRequest):
    """One item of a bulk balance adjustment."""

    account_id: int = Field(gt=0)
    action: Literal["add", "deduct", "set"]
    amount: Decimal
    reason: str | None = Field(default=None, max_length=255)

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, v: object) -> Decimal:
        return _amount(v, allow_zero=True)

    @model_validator(mode="after")
    def check_positive_delta(self) -> "BulkOperation":
        if self.action != "set" and self.amount <= 0:
            raise ValueError("Amount must be greater than 0")
        return self


class BulkBalanceRequest(StrictRequest):
    """Batch of balance adjustments processed with per-item isolation."""

    operations: Annotated[list[BulkOperation], Field(min_length=1, max_length=1000)]


def parse_request(model: type[RequestModel], payload: dict) -> RequestModel:
    """
    Validate a raw payload against a request model.

    Args:
        model: Request model class
        payload: Raw request body

    Returns:
        Validated model instance

    Raises:
        ValidationError: Missing, unknown or malformed fields
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be an object")
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise to_validation_error(e) from e


def to_validation_error(error: pydantic.ValidationError) -> ValidationError:
    """Flatten a pydantic error into the ledger ValidationError."""
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in error.errors()
    ]
    fields = ", ".join(err["field"] or "body" for err in errors)
    return ValidationError(f"Invalid request: {fields}", errors)
