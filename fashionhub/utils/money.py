"""Fixed-point helpers for money, percentages and integer quantities."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from fashionhub.exceptions import InvalidArgumentError

CENTS = Decimal('0.01')
BASIS = Decimal('0.0001')
ZERO = Decimal('0.00')

Number = Union[int, float, str, Decimal, None]


def to_money(value: Number) -> Decimal:
    """Quantize to 2 places. None becomes 0.00."""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_rate(value: Number) -> Decimal:
    """Quantize a ratio to 4 places (0.2 -> 0.2000)."""
    if value is None:
        return Decimal('0.0000')
    return Decimal(str(value)).quantize(BASIS, rounding=ROUND_HALF_UP)


def discount_ratio(discount_amount: Decimal, subtotal: Decimal) -> Decimal:
    """discount / subtotal, or 0 when the subtotal is 0."""
    if not subtotal:
        return to_rate(0)
    return to_rate(Decimal(discount_amount) / Decimal(subtotal))


def parse_money(value: Number, field: str, allow_none: bool = False) -> Optional[Decimal]:
    """
    Parse a non-negative monetary amount.

    Accepts numbers or numeric strings ("10", "10.5", "10.50").
    More than two decimal places is rejected rather than rounded.

    Raises:
        InvalidArgumentError: if the value is missing, malformed or negative.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_none:
            return None
        raise InvalidArgumentError(f'{field} is required', field=field)

    if isinstance(value, bool):
        raise InvalidArgumentError(f'{field} must be a number', field=field)

    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(f'{field} must be a number', field=field)

    if not amount.is_finite():
        raise InvalidArgumentError(f'{field} must be a number', field=field)

    if amount < 0:
        raise InvalidArgumentError(f'{field} cannot be negative', field=field)

    if amount != amount.quantize(CENTS):
        raise InvalidArgumentError(f'{field} must have at most 2 decimal places', field=field)

    return amount.quantize(CENTS)


def parse_quantity(value: Number, field: str = 'quantity', minimum: int = 1) -> int:
    """
    Parse an integer quantity (>= minimum).

    "3" and 3.0 are accepted; 2.5 is not.
    """
    if value is None or isinstance(value, bool):
        raise InvalidArgumentError(f'{field} is required', field=field)

    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(f'{field} must be a whole number', field=field)

    if not number.is_finite() or number != number.to_integral_value():
        raise InvalidArgumentError(f'{field} must be a whole number', field=field)

    quantity = int(number)
    if quantity < minimum:
        raise InvalidArgumentError(f'{field} must be at least {minimum}', field=field)
    return quantity


def format_money(value: Number) -> str:
    """String form used in JSON payloads ("25.00", "-5.00")."""
    return f"{to_money(value):.2f}"


def format_rate(value: Number) -> str:
    """String form of a 4-place ratio ("0.2000")."""
    return f"{to_rate(value):.4f}"
