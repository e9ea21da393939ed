# backend/billsplit/domain/money.py
from __future__ import annotations

from decimal import Decimal, DecimalException, InvalidOperation, ROUND_HALF_EVEN
from typing import Union


class MoneyError(ValueError):
    """Raised when currency/money parsing or formatting fails."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


# Typed amounts are capped like the bill editor caps them.
MAX_INPUT_CENTS = 999_999_99
# price × quantity and bill totals may grow past the input cap.
MAX_ABS_CENTS = 10_000_000_00
MAX_QUANTITY = 999

AmountLike = Union[str, int, Decimal]


def parse_amount(value: AmountLike, *, field: str | None = None) -> Decimal:
    """
    Parse a bill amount (decimal string such as "12.50") into a Decimal.

    Accepts:
      "12" / "12.5" / "12.345" / " 7.48 "
    Rejects:
      "" (use is_unset() for optional charges), "abc", "NaN", "Infinity",
      negative values, floats (binary floats are not exact money).
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise MoneyError("amount must be a decimal string", field=field)
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, int):
        d = Decimal(value)
    elif isinstance(value, str):
        s = value.strip()
        if s == "":
            raise MoneyError("amount is empty", field=field)
        try:
            d = Decimal(s)
        except InvalidOperation as e:
            raise MoneyError(f"invalid amount: {value}", field=field) from e
    else:
        raise MoneyError("amount must be a decimal string", field=field)

    if not d.is_finite():
        raise MoneyError(f"invalid amount: {value}", field=field)
    if d < 0:
        raise MoneyError("amount cannot be negative", field=field)
    # adjusted() first: d * 100 overflows for inputs like "1e999999".
    if d.adjusted() > 5 or d * 100 > MAX_INPUT_CENTS:
        raise MoneyError("amount cannot exceed 999999.99", field=field)
    return d


def is_unset(value: AmountLike | None) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def decimal_to_cents(
    value: str | Decimal,
    *,
    rounding=ROUND_HALF_EVEN,
    max_abs_cents: int = MAX_ABS_CENTS,
) -> int:
    """
    Convert a decimal-like value to cents with explicit rounding.

    Rounding is banker's (half-even) unless told otherwise, and it happens
    exactly once, here.

    Examples:
      "12.34" -> 1234
      "12.345" -> 1234 (half-even)
      "12.355" -> 1236 (half-even)
    """
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise MoneyError(f"invalid decimal value: {value}") from e
    if not d.is_finite():
        raise MoneyError(f"invalid decimal value: {value}")

    try:
        cents_decimal = (d * Decimal(100)).quantize(Decimal("1"), rounding=rounding)
    except DecimalException as e:
        raise MoneyError("amount exceeds safety limit") from e
    cents = int(cents_decimal)

    if abs(cents) > max_abs_cents:
        raise MoneyError("amount exceeds safety limit")

    return cents


def amount_to_cents(value: AmountLike | None, *, field: str | None = None) -> int:
    """
    Cents for an optional bill amount. Unset ("" or None) is zero.
    """
    if is_unset(value):
        return 0
    return decimal_to_cents(parse_amount(value, field=field))


def item_total_cents(price: AmountLike, quantity: int, *, field: str = "price") -> int:
    """
    price × quantity in cents, computed exactly and rounded once.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise MoneyError("quantity must be a positive integer", field="quantity")
    if quantity > MAX_QUANTITY:
        raise MoneyError(f"quantity cannot exceed {MAX_QUANTITY}", field="quantity")
    try:
        return decimal_to_cents(parse_amount(price, field=field) * quantity)
    except MoneyError as e:
        if e.field is None:
            e.field = field
        raise


def cents_to_amount(cents: int) -> str:
    """
    Render integer cents as a plain decimal string like "12.34".
    """
    if not isinstance(cents, int):
        raise MoneyError("cents must be an int")
    sign = "-" if cents < 0 else ""
    abs_cents = abs(cents)
    return f"{sign}{abs_cents // 100}.{abs_cents % 100:02d}"
