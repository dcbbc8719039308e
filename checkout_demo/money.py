"""Conversion between major currency units (19.99) and the minor units
(1999) the provider expects in ``unit_amount`` fields."""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from checkout_demo.errors import ValidationError

ZERO_DECIMAL_CURRENCIES = frozenset({
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
})
THREE_DECIMAL_CURRENCIES = frozenset({"bhd", "jod", "kwd", "omr", "tnd"})


def normalize_currency(currency: str) -> str:
    code = (currency or "").strip().lower()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"Invalid currency code: {currency!r}")
    return code


def minor_unit_factor(currency: str) -> int:
    code = normalize_currency(currency)
    if code in ZERO_DECIMAL_CURRENCIES:
        return 1
    if code in THREE_DECIMAL_CURRENCIES:
        return 1000
    return 100


def _as_decimal(amount) -> Decimal:
    if isinstance(amount, bool):
        raise ValidationError(f"Invalid amount: {amount!r}")
    try:
        # str() first so floats like 19.99 are taken as written, not as their binary value
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise ValidationError(f"Invalid amount: {amount!r}")
    if value < 0:
        raise ValidationError(f"Amount must not be negative: {amount!r}")
    return value


def to_minor_units(amount, currency: str = "eur") -> int:
    """Scale a major-unit amount to an integer count of minor units.

    Fractions of a minor unit round half up, so the same input always gives
    the same result.
    """
    scaled = _as_decimal(amount) * minor_unit_factor(currency)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int, currency: str = "eur") -> Decimal:
    return Decimal(amount) / minor_unit_factor(currency)
