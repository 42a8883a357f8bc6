"""Exchange rate cache backed by the marketplace server."""
from __future__ import annotations

import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal, localcontext
from numbers import Number
from types import MappingProxyType
from typing import Dict, List, Mapping, Union
from urllib.parse import urljoin

import requests
from blinker import Namespace

from ..settings import Settings
from .metadata import CurrencyConfigurationError, CurrencyRegistry
from .units import WORKING_PRECISION, ConversionError, to_decimal, to_plain_string

currency_signals = Namespace()

fetching_exchange_rates = currency_signals.signal("fetching-exchange-rates")
exchange_rate_change = currency_signals.signal("exchange-rate-change")

Amount = Union[int, float, Decimal, str]


def exchange_rate_change_for(code: str):
    """Return the signal sent when the rate for ``code`` changes."""
    return currency_signals.signal(f"exchange-rate-change-{code}")


class NoExchangeRateDataError(LookupError):
    def __init__(self, message: str = "Missing exchange rate data") -> None:
        super().__init__(message)


class ExchangeRateFetchError(RuntimeError):
    pass


@dataclass(slots=True)
class ConversionOutcome:
    """Result of a conversion attempt that callers branch on explicitly."""

    amount: Amount
    currency: str
    converted: bool
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ExchangeRateCache:
    def __init__(
        self,
        settings: Settings,
        registry: CurrencyRegistry,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.session = session or requests.Session()
        self._rates: Dict[str, float] = {}
        # One worker keeps overlapping refreshes in submission order.
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="exchange-rates")
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def rates(self) -> Mapping[str, float]:
        return MappingProxyType(self._rates)

    def pivot_coin(self) -> str:
        supported = self.registry.supported_wallet_currencies()
        if not supported:
            raise CurrencyConfigurationError("No supported wallet currencies are configured")
        if "BTC" in supported or "TBTC" in supported:
            return "BTC"
        return self.registry.ensure_mainnet_code(supported[0])

    def fetch(self, **request_kwargs) -> Future:
        """Request fresh rates and swap them in once the response arrives.

        Periodic refreshes are driven by ``pricefmt.syncer``; most callers only
        need ``get_exchange_rate`` or ``convert_currency``.
        """
        coin = self.pivot_coin()
        request_kwargs.setdefault("timeout", self.settings.request_timeout)
        future = self._executor.submit(self._fetch, coin, request_kwargs)
        fetching_exchange_rates.send(self, future=future)
        return future

    def _fetch(self, coin: str, request_kwargs: dict) -> List[str]:
        url = urljoin(self.settings.server_url, f"ob/exchangerates/{coin}")
        try:
            response = self.session.get(url, **request_kwargs)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            self.logger.warning("Unable to fetch exchange rates for %s: %s", coin, exc)
            raise ExchangeRateFetchError(str(exc)) from exc
        return self.replace_rates(payload, coin)

    def replace_rates(self, payload: object, coin: str) -> List[str]:
        """Swap in a new rate table and announce the codes whose rate changed."""
        if not isinstance(payload, dict):
            raise ExchangeRateFetchError("Exchange rate payload must be a JSON object")
        for code, rate in payload.items():
            if isinstance(rate, bool) or not isinstance(rate, Number):
                raise ExchangeRateFetchError(f"Exchange rate for {code} is not a number")

        previous = self._rates
        updated: Dict[str, float] = {**payload, coin: 1}

        changed: List[str] = [code for code in previous if previous[code] != updated.get(code)]
        changed.extend(code for code in updated if code not in previous)

        self._rates = updated

        if changed:
            self.logger.info("Exchange rates changed for %s", ", ".join(changed))
            exchange_rate_change.send(self, changed=list(changed))
            for code in changed:
                exchange_rate_change_for(code).send(self, previous=previous.get(code))
        return changed

    def get_exchange_rate(self, currency: str) -> float | None:
        """Return the rate between the pivot coin and ``currency``."""
        if not currency:
            raise ValueError("Please provide a currency.")
        cur = currency if self.registry.is_fiat_cur(currency) else self.registry.ensure_mainnet_code(currency)
        return self._rates.get(cur)

    def convert_currency(self, amount: Amount, from_cur: str, to_cur: str) -> Amount:
        """Convert ``amount`` between currencies using the cached rates.

        String amounts are converted with Decimal precision and returned as a
        string; numeric amounts use float arithmetic.
        """
        if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal, str)):
            raise ConversionError("The amount must be provided as a number or string.")

        if isinstance(amount, str):
            precise_amount = to_decimal(amount)
            if precise_amount.is_nan():
                raise ConversionError("The string based number evaluates to NaN.")
        elif isinstance(amount, (float, Decimal)) and math.isnan(amount):
            raise ConversionError("If providing an amount as a number, it cannot be NaN.")

        if not isinstance(from_cur, str):
            raise ConversionError("Please provide a from currency as a string")
        if not isinstance(to_cur, str):
            raise ConversionError("Please provide a to currency as a string")

        from_code = self.registry.ensure_mainnet_code(from_cur.upper())
        to_code = self.registry.ensure_mainnet_code(to_cur.upper())

        if from_code == to_code:
            return amount

        rates = self._rates
        if not rates.get(from_code):
            raise NoExchangeRateDataError(f"We do not have exchange rate data for {from_cur.upper()}.")
        if not rates.get(to_code):
            raise NoExchangeRateDataError(f"We do not have exchange rate data for {to_cur.upper()}.")

        from_rate = rates[from_code]
        to_rate = rates[to_code]

        if isinstance(amount, str):
            with localcontext() as ctx:
                ctx.prec = WORKING_PRECISION
                result = precise_amount / to_decimal(from_rate) * to_decimal(to_rate)
            return to_plain_string(result)

        return (float(amount) / from_rate) * to_rate

    def try_convert(self, amount: Amount, from_cur: str, to_cur: str) -> ConversionOutcome:
        try:
            converted = self.convert_currency(amount, from_cur, to_cur)
        except (NoExchangeRateDataError, ConversionError, LookupError) as exc:
            return ConversionOutcome(amount=amount, currency=from_cur, converted=False, error=exc)
        return ConversionOutcome(amount=converted, currency=to_cur, converted=True)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
