"""
Common validators for user input.

Each validator returns a tuple of (is_valid, parsed_value, error_message).
"""

import re
from decimal import Decimal, InvalidOperation


MOBILE_MIN_DIGITS = 9
MOBILE_MAX_DIGITS = 15


def validate_mobile(value: str) -> tuple[bool, str | None, str | None]:
    """
    Validate a mobile number.

    Args:
        value: Mobile number, formatting characters allowed

    Returns:
        Tuple of (is_valid, normalized_mobile, error_message)

    Examples:
        >>> validate_mobile("923 456 789")
        (True, '923456789', None)
        >>> validate_mobile("12")
        (False, None, 'Mobile must be 9-15 digits')
    """
    if not value or not isinstance(value, str):
        return False, None, "Mobile is empty"

    value = value.strip()

    if not value:
        return False, None, "Mobile is empty"

    if len(value) > 32:
        return False, None, "Mobile is too long (maximum 32 characters)"

    # Keep leading + only
    plus = "+" if value.startswith("+") else ""
    digits = re.sub(r"\D", "", value)

    if len(digits) < MOBILE_MIN_DIGITS or len(digits) > MOBILE_MAX_DIGITS:
        return False, None, f"Mobile must be {MOBILE_MIN_DIGITS}-{MOBILE_MAX_DIGITS} digits"

    return True, plus + digits, None


def validate_amount(
    amount: str | int | Decimal,
    min_val: Decimal = Decimal("0"),
    max_val: Decimal | None = None,
) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate a KZ amount.

    Args:
        amount: Amount as string or number
        min_val: Minimum allowed value (exclusive when zero)
        max_val: Maximum allowed value (optional)

    Returns:
        Tuple of (is_valid, parsed_value, error_message)

    Examples:
        >>> validate_amount("100.50")
        (True, Decimal('100.50'), None)
        >>> validate_amount("-10")
        (False, None, 'Amount must be greater than 0')
    """
    if isinstance(amount, bool) or amount is None:
        return False, None, "Amount is empty"

    if isinstance(amount, str):
        amount = amount.strip().replace(",", ".")
        if not amount:
            return False, None, "Amount is empty"

    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        return False, None, "Invalid amount format"

    if not value.is_finite():
        return False, None, "Amount must be a finite number"

    if min_val == 0 and value <= 0:
        return False, None, "Amount must be greater than 0"

    if value < min_val:
        return False, None, f"Amount must be >= {min_val}"

    if max_val is not None and value > max_val:
        return False, None, f"Amount must be <= {max_val}"

    # Two decimal places max
    if value.as_tuple().exponent < -2:
        return False, None, "Amount has too many decimal places (maximum 2)"

    return True, value, None


def validate_iban(value: str) -> tuple[bool, str | None, str | None]:
    """Validate an IBAN / bank account number (spaces stripped, upper-cased)."""
    if not value or not isinstance(value, str):
        return False, None, "IBAN is empty"

    cleaned = re.sub(r"\s", "", value).upper()
    if not re.fullmatch(r"[A-Z0-9]{8,34}", cleaned):
        return False, None, "IBAN must be 8-34 letters or digits"

    return True, cleaned, None
