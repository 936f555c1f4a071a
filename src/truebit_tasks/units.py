"""Fixed-point conversion between decimal token amounts and atomic units."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

DEFAULT_DECIMALS = 18


def to_atomic(value: Decimal | int | str, decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a decimal amount into integer atomic units without rounding.

    ``to_atomic("100")`` is ``100 * 10**18``. Values carrying more fractional
    digits than ``decimals`` are rejected instead of truncated.
    """

    amount = _as_decimal(value)
    if amount < 0:
        raise ValueError(f"Token amount must be >= 0: {value!r}")
    with localcontext() as context:
        context.prec = 100
        scaled = amount.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"Token amount {value!r} has more than {decimals} fractional digits.",
            )
        return int(scaled)


def from_atomic(amount: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Convert integer atomic units back into a decimal amount."""

    with localcontext() as context:
        context.prec = 100
        return Decimal(int(amount)).scaleb(-decimals)


def format_units(amount: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render atomic units as a plain decimal string without trailing zeros."""

    value = from_atomic(amount, decimals)
    with localcontext() as context:
        context.prec = 100
        if value == value.to_integral_value():
            return str(value.quantize(Decimal(1)))
        return format(value.normalize(), "f")


def _as_decimal(value: Decimal | int | str) -> Decimal:
    if isinstance(value, float):
        raise TypeError("Token amounts must be given as str, int or Decimal, not float.")
    try:
        amount = Decimal(value.strip()) if isinstance(value, str) else Decimal(value)
    except InvalidOperation as error:
        raise ValueError(f"Invalid token amount: {value!r}") from error
    if not amount.is_finite():
        raise ValueError(f"Invalid token amount: {value!r}")
    return amount
