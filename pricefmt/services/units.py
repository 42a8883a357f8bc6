"""Helpers for converting between decimal amounts and integer base units."""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Dict, Tuple, Union

from .metadata import DEFAULT_CRYPTO_COIN_DIVISIBILITY, CurrencyRegistry

logger = logging.getLogger(__name__)

Numeric = Union[int, float, Decimal, str]

# Enough digits to carry 20 fractional places on amounts in the trillions.
WORKING_PRECISION = 80

BTC_UNIT_EXPONENTS: Dict[str, int] = {
    "BTC": 0,
    "MBTC": 3,
    "UBTC": 6,
    "SATOSHI": 8,
}


class ConversionError(ValueError):
    pass


def to_decimal(value: object) -> Decimal:
    """Coerce a number or numeric string to ``Decimal`` without float noise."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise ConversionError("The value must be provided as a number or a string.")
    try:
        if isinstance(value, float):
            return Decimal(repr(value))
        return Decimal(value.strip() if isinstance(value, str) else value)
    except InvalidOperation as exc:
        raise ConversionError(f"Invalid decimal value: {value}") from exc


def to_plain_string(value: Decimal) -> str:
    """Render a Decimal without exponent notation or trailing zeros."""
    if value.is_zero():
        return "0"
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, WORKING_PRECISION)
        return format(value.normalize(), "f")


def is_valid_coin_divisibility(coin_divisibility: object) -> Tuple[bool, str]:
    return (
        isinstance(coin_divisibility, int)
        and not isinstance(coin_divisibility, bool)
        and coin_divisibility > 0,
        "The coin divisibility must be an integer greater than 0",
    )


def _check_divisibility(divisibility: object) -> int:
    is_valid, message = is_valid_coin_divisibility(divisibility)
    if not is_valid:
        raise ConversionError(message)
    return divisibility  # type: ignore[return-value]


def min_value_by_coin_div(coin_divisibility: int, return_in_standard_notation: bool = False) -> Union[float, str]:
    """Return the smallest amount the divisibility supports (8 -> 1e-08)."""
    is_valid, _ = is_valid_coin_divisibility(coin_divisibility)
    if not is_valid:
        raise ConversionError("The provided coin divisibility is not valid.")
    min_value = Decimal(1).scaleb(-coin_divisibility)
    if return_in_standard_notation:
        return to_plain_string(min_value)
    return float(min_value)


def decimal_to_integer(value: Numeric, divisibility: int) -> str:
    """
    Convert a decimal amount into base units.

    Args:
        value: A number or numeric string.
        divisibility: Coin divisibility (8 for bitcoin).

    Returns:
        The integer amount as a string.
    """
    amount = to_decimal(value)
    _check_divisibility(divisibility)
    if not amount.is_finite():
        raise ConversionError(f"Unable to convert {value} to an integer")
    with localcontext() as ctx:
        ctx.prec = max(WORKING_PRECISION, amount.adjusted() + divisibility + 2)
        quantized = amount.scaleb(divisibility).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return str(int(quantized))


def integer_to_decimal(value: Numeric, divisibility: int, return_none_on_error: bool = True) -> str | None:
    """
    Convert a base-unit integer into its decimal amount.

    Args:
        value: A number or numeric string in base units.
        divisibility: Coin divisibility (8 for bitcoin).
        return_none_on_error: When true, failures are logged and ``None`` is
            returned so templates render nothing instead of failing.

    Returns:
        The decimal amount as a string, or ``None`` on a swallowed failure.
    """
    try:
        amount = to_decimal(value)
        _check_divisibility(divisibility)
        if amount.is_nan():
            raise ConversionError("result is not a number")
        if not amount.is_finite():
            raise ConversionError("result is not a finite number")
        with localcontext() as ctx:
            ctx.prec = WORKING_PRECISION
            return to_plain_string(amount.scaleb(-divisibility))
    except ConversionError as exc:
        if not return_none_on_error:
            raise
        logger.error("Unable to convert %s from an integer to a decimal: %s", value, exc)
        return None


def convert_btc_unit(amount: Numeric, unit: str) -> Decimal:
    """Express a BTC amount in ``unit`` (BTC, MBTC, UBTC or SATOSHI)."""
    try:
        exponent = BTC_UNIT_EXPONENTS[unit.upper()]
    except KeyError as exc:
        raise ConversionError(f"Unknown bitcoin unit '{unit}'") from exc
    return to_decimal(amount).scaleb(exponent)


def create_amount(
    amount: Numeric,
    cur_code: str,
    registry: CurrencyRegistry,
    divisibility: int | None = None,
) -> Dict[str, object]:
    """
    Return a string based amount along with a currency definition.

    Numbers are treated as decimal amounts and converted to base units.
    Strings are assumed to already be in base units (as returned by
    ``decimal_to_integer``).
    """
    if isinstance(amount, bool) or not (
        isinstance(amount, (int, float, Decimal)) or (isinstance(amount, str) and amount)
    ):
        raise ConversionError("The amount must be provided as a number or a non-empty string.")

    if not isinstance(cur_code, str) or not cur_code:
        raise ConversionError("The currency code must be provided as a non-empty string.")

    if divisibility is None:
        try:
            divisibility = registry.get_coin_divisibility(cur_code)
        except (LookupError, RuntimeError) as exc:
            logger.debug("Using default divisibility for %s: %s", cur_code, exc)
            divisibility = DEFAULT_CRYPTO_COIN_DIVISIBILITY

    _check_divisibility(divisibility)

    converted = amount if isinstance(amount, str) else decimal_to_integer(amount, divisibility)

    return {
        "amount": converted,
        "currency": {
            "code": cur_code,
            "divisibility": divisibility,
        },
    }
