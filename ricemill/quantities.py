"""
Decimal helpers for weights, prices and money.

Weights are kept at 3 decimal places (grams), unit prices at 4 and money
at 2 (cents). Every column is 14 digits wide. Floats are converted through
``str`` so ``0.1`` stays ``Decimal('0.1')``.

Inputs are never rounded to fit a column: a value with more decimal places
than its column raises ValidationError('TOO_PRECISE') and one too large for
it raises ValidationError('INVALID_NUMBER'). Only computed invoice totals
are rounded (half-up, to cents).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ricemill.exceptions import ValidationError

MAX_DIGITS = 14
WEIGHT_PLACES = Decimal('0.001')
PRICE_PLACES = Decimal('0.0001')
MONEY_PLACES = Decimal('0.01')
ZERO = Decimal('0')


def to_decimal(value, field: str = 'value') -> Decimal:
    """Coerce ``value`` to a finite Decimal or raise ValidationError('INVALID_NUMBER')."""
    if isinstance(value, bool) or value is None:
        raise ValidationError('INVALID_NUMBER', field=field, value=value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError('INVALID_NUMBER', field=field, value=value) from None
    if not result.is_finite():
        raise ValidationError('INVALID_NUMBER', field=field, value=value)
    return result


def column_limit(places: Decimal) -> Decimal:
    """Smallest magnitude a 14-digit column with ``places`` decimals cannot hold."""
    return Decimal(10) ** (MAX_DIGITS + places.as_tuple().exponent)


def check_range(value: Decimal, places: Decimal, field: str) -> Decimal:
    """Raise ValidationError('INVALID_NUMBER') when ``value`` does not fit its column."""
    limit = column_limit(places)
    if abs(value) >= limit:
        raise ValidationError('INVALID_NUMBER', field=field, value=str(value), limit=str(limit))
    return value


def fixed(value, places: Decimal, field: str) -> Decimal:
    """``value`` as a Decimal with exactly ``places`` decimals, without losing precision."""
    result = check_range(to_decimal(value, field), places, field)
    exact = result.quantize(places)
    if exact != result:
        raise ValidationError(
            'TOO_PRECISE',
            field=field,
            value=str(value),
            places=-places.as_tuple().exponent,
        )
    return exact


def as_weight(value, field: str = 'quantity') -> Decimal:
    return fixed(value, WEIGHT_PLACES, field)


def as_price(value, field: str = 'unit_price') -> Decimal:
    return fixed(value, PRICE_PLACES, field)


def as_money(value, field: str = 'amount') -> Decimal:
    return fixed(value, MONEY_PLACES, field)


def line_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    """Invoice total, rounded half-up to cents."""
    total = (quantity * unit_price).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)
    return check_range(total, MONEY_PLACES, 'total')
