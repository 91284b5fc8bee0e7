from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_price(value: object) -> Decimal:
    """Normalize a price that may arrive as a number, a decimal string or junk.

    Anything that cannot be read as a finite, non-negative decimal becomes 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            result = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO

    if not result.is_finite() or result < 0:
        return ZERO
    return result


def quantize_price(value: Decimal) -> Decimal:
    return value.quantize(CENT)
