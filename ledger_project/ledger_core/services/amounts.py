from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import NamedTuple

from django.core.exceptions import ValidationError

PAYABLE = "payable"
RECEIVABLE = "receivable"
DIRECTIONS = (PAYABLE, RECEIVABLE)

ZERO = Decimal("0.00")
QUANTUM = Decimal("0.01")


def money(value, field="amount") -> Decimal:
    """Coerce user or database input to a 2-place Decimal."""
    if value is None or value == "":
        return ZERO
    try:
        # str() first so floats don't drag binary noise along
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid {field}: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid {field}: {value!r}")
    return amount.quantize(QUANTUM, rounding=ROUND_HALF_UP)


class Balance(NamedTuple):
    """Non-negative magnitude paired with a direction."""
    amount: Decimal
    direction: str


# ----------------------------------------------
# Sign convention, the only place it is defined:
#   positive = business owes contact (payable)
#   negative = contact owes business (receivable)
# ----------------------------------------------
def to_signed(balance: Balance) -> Decimal:
    if balance.direction not in DIRECTIONS:
        raise ValidationError(f"Unknown balance direction: {balance.direction}")
    amount = money(balance.amount)
    return amount if balance.direction == PAYABLE else -amount


def from_signed(signed) -> Balance:
    signed = money(signed)
    if signed > 0:
        return Balance(signed, PAYABLE)
    if signed < 0:
        return Balance(-signed, RECEIVABLE)
    # zero is payable by convention
    return Balance(ZERO, PAYABLE)


def flip(direction: str) -> str:
    return RECEIVABLE if direction == PAYABLE else PAYABLE


def shift_balance(balance: Balance, direction: str, amount, reverse=False) -> Balance:
    """
    Settle `amount` of a balance in the given direction.

    Receiving money against a receivable moves the signed value up,
    paying out against a payable moves it down. Overshooting zero
    flips the direction; landing on zero yields payable.
    With reverse=True the exact opposite delta is applied.
    """
    if direction not in DIRECTIONS:
        raise ValidationError(f"Unknown balance direction: {direction}")
    delta = money(amount)
    if direction == PAYABLE:
        delta = -delta
    if reverse:
        delta = -delta
    return from_signed(to_signed(balance) + delta)
