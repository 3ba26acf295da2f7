# app/utils/decimal_utils.py
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """Coerce a stored or submitted amount to a 2-place Decimal; None and blanks count as zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        return ZERO


def compute_balance(amount, paid_amount) -> Decimal:
    return to_decimal(to_decimal(amount) - to_decimal(paid_amount))


def balance_type(balance: Decimal) -> str:
    if balance > ZERO:
        return "creditor"
    if balance < ZERO:
        return "debtor"
    return "balanced"
