"""Number parsing and rounding utilities for monetary values."""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

CENT = Decimal('0.01')
ZERO = Decimal('0')
HUNDRED = Decimal('100')

# 1,234.56 / 1234.56 / -12 / .5 ; thousands separator is optional but must be well grouped
NUMBER_PATTERN = re.compile(r"^-?(?:\d{1,3}(?:,\d{3})+|\d+)?(?:\.\d+)?$")


def to_decimal(value, default=None):
    """
    Parse a numeric value from a JSON payload, form field or DB column into Decimal.

    Accepts int, float, Decimal and strings such as "1,234.50" or " 12 ".
    Currency symbols are not stripped.
    Empty strings and None return `default`.

    Floats are converted through their shortest repr so that 0.1 becomes
    Decimal('0.1') and not the binary expansion.

    Raises:
        ValueError: if the value is not a finite number.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f'Not a number: {value!r}')
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        cleaned = str(value).strip().replace('\xa0', '').replace(' ', '')
        if not cleaned:
            return default
        if not NUMBER_PATTERN.match(cleaned) or cleaned in ('-', '.', '-.'):
            raise ValueError(f'Not a number: {value!r}')
        try:
            result = Decimal(cleaned.replace(',', ''))
        except InvalidOperation:
            raise ValueError(f'Not a number: {value!r}')

    if not result.is_finite():
        raise ValueError(f'Not a finite number: {value!r}')
    return result


def round2(value) -> Decimal:
    """Round half-up to cents."""
    value = to_decimal(value, ZERO)
    with localcontext() as ctx:
        # quantize needs every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def clamp(value: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    return max(lower, min(upper, value))


def money_str(value) -> str:
    """Format an amount with exactly two decimals (e.g. for PDF cells)."""
    if value is None:
        return '0.00'
    return f"{round2(value):,.2f}"


def money_float(value) -> float:
    """JSON number with two decimals of semantic precision."""
    return float(round2(value if value is not None else ZERO))
