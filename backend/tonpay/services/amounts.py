"""
Amount Conversion

TON amounts are converted to nanotons (10^-9 TON) with exact decimal
arithmetic. Digits beyond the ninth fractional place are truncated, never
rounded.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Union

from ..exceptions import ConversionError

NANO_DECIMALS = 9

_DECIMAL_RE = re.compile(r"^(\d+(\.\d*)?|\.\d+)$")

Amount = Union[str, int, float, Decimal]


def normalize_amount(amount: Amount) -> str:
    """
    Return the amount as a plain decimal string.

    Floats go through repr so 0.5 becomes "0.5", not its binary expansion.

    Raises:
        ConversionError: amount is negative, non-finite, or not a number
    """
    if isinstance(amount, bool):
        raise ConversionError("Amount must be a number", details={"amount": amount})

    if isinstance(amount, int):
        text = str(amount)
    elif isinstance(amount, float):
        text = repr(amount)
        if "e" in text or "E" in text:
            # 1e-05 and friends
            try:
                text = format(Decimal(text), "f")
            except InvalidOperation:
                raise ConversionError(f"Invalid amount: {amount!r}", details={"amount": str(amount)})
    elif isinstance(amount, Decimal):
        if not amount.is_finite():
            raise ConversionError(f"Invalid amount: {amount}", details={"amount": str(amount)})
        text = format(amount, "f")
    elif isinstance(amount, str):
        text = amount.strip()
    else:
        raise ConversionError(
            f"Unsupported amount type: {type(amount).__name__}",
            details={"amount": repr(amount)}
        )

    if not _DECIMAL_RE.match(text):
        raise ConversionError(
            f"Amount must be a non-negative decimal, got {amount!r}",
            details={"amount": str(amount)}
        )
    return text


def to_nanotons(amount: Amount) -> str:
    """
    Convert a TON amount to an integer nanoton string.

    Examples:
        >>> to_nanotons("0.5")
        '500000000'
        >>> to_nanotons("0.1234567895")
        '123456789'
    """
    text = normalize_amount(amount)
    with localcontext() as ctx:
        # enough precision that the multiplication itself never rounds
        ctx.prec = len(text) + NANO_DECIMALS + 2
        scaled = Decimal(text).scaleb(NANO_DECIMALS)
        nano = scaled.to_integral_value(rounding=ROUND_DOWN)
    return str(int(nano))
