"""
Currency helpers.

All arithmetic is done in Decimal; floats never touch a price.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from config import settings


def to_decimal(value) -> Decimal:
    """Coerce a stored price (Decimal, int, str, float) to Decimal."""
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so 499.1 does not become 499.0999999...
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not a monetary value: {value!r}")


def to_minor_units(price, exponent: int | None = None) -> int:
    """
    Convert a major-unit price to the provider's smallest currency unit.

    Rounds half-up to the nearest integer unit: 499.00 -> 49900,
    1200 -> 120000, 10.005 -> 1001 (exponent 2).
    """
    if exponent is None:
        exponent = settings.currency_exponent
    scaled = to_decimal(price) * (Decimal(10) ** exponent)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
