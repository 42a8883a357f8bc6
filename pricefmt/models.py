"""Price record used by listing forms and the JSON API."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, List, Mapping, MutableMapping, Union

from .services.units import WORKING_PRECISION, to_decimal

# BTC prices travel to the server in units of 1e-9 BTC rather than satoshi
# (1e-8). Everything else is sent in hundredths.
BTC_PRICE_MULTIPLIER = 1_000_000_000
DEFAULT_PRICE_MULTIPLIER = 100

PriceLike = Union["Price", MutableMapping[str, Any]]


class PriceValidationError(ValueError):
    """Raised when a price update fails validation."""

    def __init__(self, errors: Dict[str, List[str]]) -> None:
        super().__init__("; ".join(message for messages in errors.values() for message in messages))
        self.errors = errors


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    return not (isinstance(value, float) and math.isnan(value)) and not (
        isinstance(value, Decimal) and value.is_nan()
    )


@dataclass(slots=True)
class Price:
    amount: Any = None
    currency_code: str = field(default="USD")

    @classmethod
    def with_defaults(cls, local_currency: str | None = None, **attrs: Any) -> "Price":
        """Create a price whose currency defaults to the user's local currency."""
        attrs.setdefault("currency_code", local_currency or "USD")
        price = cls(**attrs)
        price.check()
        return price

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], local_currency: str | None = None) -> "Price":
        """Build a validated price, defaulting a missing currency code."""
        attrs = {"amount": payload.get("amount")}
        currency_code = payload.get("currency_code", payload.get("currencyCode"))
        if currency_code is not None:
            attrs["currency_code"] = currency_code
        return cls.with_defaults(local_currency, **attrs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def validate(attrs: Mapping[str, Any]) -> Dict[str, List[str]] | None:
        errors: Dict[str, List[str]] = {}

        def add_error(field_name: str, error: str) -> None:
            errors.setdefault(field_name, []).append(error)

        amount = attrs.get("amount")
        if amount is None or amount == "":
            add_error("amount", "Please provide a price.")
        elif not _is_number(amount):
            add_error("amount", "Please provide the price amount as a number.")
        elif amount <= 0:
            add_error("amount", "The price must be greater than 0.")

        currency_code = attrs.get("currency_code")
        if not isinstance(currency_code, str) or not currency_code.strip():
            add_error("currency_code", "Please provide a currency code.")

        return errors or None

    def errors(self) -> Dict[str, List[str]] | None:
        return self.validate(self.to_dict())

    def check(self) -> None:
        errors = self.errors()
        if errors:
            raise PriceValidationError(errors)

    def update(self, **changes: Any) -> "Price":
        """Apply ``changes`` only if the resulting price is valid."""
        candidate = {**self.to_dict(), **changes}
        errors = self.validate(candidate)
        if errors:
            raise PriceValidationError(errors)
        self.amount = candidate["amount"]
        self.currency_code = candidate["currency_code"]
        return self

    @staticmethod
    def _fields(price: PriceLike) -> tuple[Any, str | None]:
        if isinstance(price, Price):
            return price.amount, price.currency_code
        if isinstance(price, MutableMapping):
            return price.get("amount"), price.get("currency_code", price.get("currencyCode"))
        raise TypeError("Please provide a price object.")

    @staticmethod
    def _set_amount(price: PriceLike, amount: Any) -> None:
        if isinstance(price, Price):
            price.amount = amount
        else:
            price["amount"] = amount

    @classmethod
    def convert_price_out(cls, price: PriceLike) -> PriceLike:
        """
        Convert the amount from a decimal to an integer in place. BTC is
        converted using BTC_PRICE_MULTIPLIER, all other codes use hundredths.
        """
        amount, currency_code = cls._fields(price)
        if isinstance(amount, (int, float)) and not isinstance(amount, bool):
            multiplier = BTC_PRICE_MULTIPLIER if currency_code == "BTC" else DEFAULT_PRICE_MULTIPLIER
            cls._set_amount(price, math.floor(amount * multiplier + 0.5))
        return price

    @classmethod
    def convert_price_in(cls, price: PriceLike) -> PriceLike:
        """Convert the amount from an integer back to a decimal in place."""
        amount, currency_code = cls._fields(price)
        if isinstance(amount, (int, float)) and not isinstance(amount, bool) and math.isfinite(amount):
            multiplier = BTC_PRICE_MULTIPLIER if currency_code == "BTC" else DEFAULT_PRICE_MULTIPLIER
            value = to_decimal(amount)
            with localcontext() as ctx:
                ctx.prec = max(WORKING_PRECISION, value.adjusted() + 4)
                ctx.rounding = ROUND_HALF_UP
                rounded = (value / multiplier).quantize(Decimal("0.01"))
            cls._set_amount(price, float(rounded))
        return price
