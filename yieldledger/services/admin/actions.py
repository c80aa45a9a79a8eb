"""
Admin action kinds.

Closed tagged union over the operations an administrator can dispatch
through ``AdminService.execute``; ``kind`` selects the variant and each
variant carries its own typed payload.
"""

from decimal import Decimal
from typing import Annotated, Literal

import pydantic
from pydantic import Field, TypeAdapter, field_validator

from yieldledger.validators.requests import StrictRequest, to_validation_error
from yieldledger.validators.common import validate_amount
from yieldledger.utils.exceptions import ValidationError


class _AccountAction(StrictRequest):
    account_id: int = Field(gt=0)


class _AmountAction(_AccountAction):
    amount: Decimal
    reason: str | None = Field(default=None, max_length=255)

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, v: object) -> Decimal:
        is_valid, parsed, error = validate_amount(v)
        if not is_valid:
            raise ValueError(error)
        return parsed


class AddBalanceAction(_AmountAction):
    """Credit an account."""

    kind: Literal["add_balance"]


class DeductBalanceAction(_AmountAction):
    """Debit an account; rejected when funds are insufficient."""

    kind: Literal["deduct_balance"]


class SetBalanceAction(_AccountAction):
    """Move an account to an exact balance through a recorded delta."""

    kind: Literal["set_balance"]
    new_balance: Decimal = Field(ge=0)
    reason: str | None = Field(default=None, max_length=255)


class SimulateCheckinAction(_AccountAction):
    """Run the daily check-in on behalf of an account."""

    kind: Literal["simulate_checkin"]


class SimulateCollectIncomeAction(_AccountAction):
    """Collect every due purchase on behalf of an account."""

    kind: Literal["simulate_collect_income"]


AdminAction = Annotated[
    AddBalanceAction
    | DeductBalanceAction
    | SetBalanceAction
    | SimulateCheckinAction
    | SimulateCollectIncomeAction,
    Field(discriminator="kind"),
]

_admin_action_adapter: TypeAdapter[AdminAction] = TypeAdapter(AdminAction)


def parse_admin_action(payload: dict) -> AdminAction:
    """
    Validate a raw admin action payload.

    Raises:
        ValidationError: Unknown ``kind`` or malformed payload
    """
    if not isinstance(payload, dict):
        raise ValidationError("Action must be an object")
    try:
        return _admin_action_adapter.validate_python(payload)
    except pydantic.ValidationError as e:
        raise to_validation_error(e) from e
