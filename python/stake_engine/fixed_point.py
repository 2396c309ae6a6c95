"""Fixed-point conversion between shares, minor units and display amounts.

All share/amount arithmetic uses Python ints; floats only appear at the
display boundary (``shannons_to_tokens``).
"""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from .errors import InvalidNumericInput

SHARE_PRICE_SCALE = 10**18
TOKEN_DECIMALS = 18


def parse_minor_units(value, field: str = "value") -> int:
    """Parse a non-negative integer string (or int) into an int."""
    if isinstance(value, bool):
        raise InvalidNumericInput(field, value)
    if isinstance(value, int):
        if value < 0:
            raise InvalidNumericInput(field, value)
        return value
    if not isinstance(value, str):
        raise InvalidNumericInput(field, value)
    s = value.strip()
    # str.isdigit() also accepts superscripts and other unicode digits
    if not s or not (s.isascii() and s.isdigit()):
        raise InvalidNumericInput(field, value)
    return int(s)


def multiply_shares_by_share_price(shares: str, share_price: str) -> str:
    """amount = floor(shares * share_price / 10^18), as a minor-unit string."""
    s = parse_minor_units(shares, "shares")
    p = parse_minor_units(share_price, "share_price")
    return str(s * p // SHARE_PRICE_SCALE)


def shannons_to_tokens(amount, decimals: int = TOKEN_DECIMALS) -> float:
    """Minor units -> display float."""
    n = parse_minor_units(amount, "amount")
    return n / 10**decimals


def tokens_to_shannons(amount, decimals: int = TOKEN_DECIMALS) -> str:
    """Display amount -> minor-unit string (truncated toward zero)."""
    try:
        # str() first so floats keep their shortest repr, not binary noise
        d = Decimal(str(amount).strip())
    except InvalidOperation:
        raise InvalidNumericInput("amount", amount) from None
    if not d.is_finite() or d < 0:
        raise InvalidNumericInput("amount", amount)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(d.as_tuple().digits) + decimals + 2)
        return str(int(d.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN)))


def format_tokens(amount, precision: int = 4, decimals: int = TOKEN_DECIMALS) -> str:
    """Exact decimal string of a minor-unit amount, rounded half-up."""
    n = parse_minor_units(amount, "amount")
    with localcontext() as ctx:
        ctx.prec = len(str(n)) + precision + 2
        q = Decimal(1).scaleb(-precision)
        return str(Decimal(n).scaleb(-decimals).quantize(q, rounding=ROUND_HALF_UP))
