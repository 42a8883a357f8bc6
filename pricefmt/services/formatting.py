"""Locale aware rendering of currency amounts."""
from __future__ import annotations

import copy
import logging
from decimal import ROUND_HALF_UP, Decimal, localcontext
from enum import Enum
from typing import Any

from babel import Locale, UnknownLocaleError
from babel import numbers as babel_numbers
from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup

from ..i18n import Translator, standardize_language
from ..settings import LocalSettings
from .exchange_rates import Amount, ExchangeRateCache
from .metadata import (
    DEFAULT_CRYPTO_COIN_DIVISIBILITY,
    CurrencyMeta,
    CurrencyRegistry,
    UnrecognizedCurrencyError,
)
from .units import WORKING_PRECISION, ConversionError, convert_btc_unit, to_decimal

# Upper bound on fraction digits for any rendered amount.
MAX_NUMBER_FORMAT_DISPLAY_DECIMALS = 20

CRYPTO_LISTING_CODE_DISPLAY_LENGTH = 8

BTC_UNIT_DISPLAY = {
    "MBTC": "mBTC",
    "UBTC": "μBTC",
    "SATOSHI": "sat",
}

FORMATTED_CURRENCY_TEMPLATE = "components/formatted_currency.html"


class CurrencyValidity(str, Enum):
    VALID = "VALID"
    EXCHANGE_RATE_MISSING = "EXCHANGE_RATE_MISSING"
    UNRECOGNIZED_CURRENCY = "UNRECOGNIZED_CURRENCY"


def default_jinja_env() -> Environment:
    return Environment(
        loader=PackageLoader("pricefmt", "templates"),
        autoescape=select_autoescape(),
    )


def is_formatted_result_zero(amount: Amount, max_decimals: int) -> bool:
    """Return True if ``amount`` rounded to ``max_decimals`` places shows as zero."""
    value = to_decimal(amount)
    if not value.is_finite():
        return False
    if max_decimals == 0:
        return True
    threshold = Decimal(1).scaleb(-max_decimals)
    if value >= threshold:
        return False
    if value < 0:
        return True
    with localcontext() as ctx:
        ctx.prec = WORKING_PRECISION
        rounded = value.quantize(threshold, rounding=ROUND_HALF_UP)
    return rounded < threshold


def _is_positive(amount: Amount) -> bool:
    value = to_decimal(amount)
    return value.is_finite() and value > 0


def get_max_display_digits(amount: Amount, desired_max: int) -> int:
    """
    Raise ``desired_max`` until a nonzero ``amount`` no longer renders as zero.

    The search stops at MAX_NUMBER_FORMAT_DISPLAY_DECIMALS, so an amount
    smaller than that can still render as zero. A desired max of 0 is taken
    as an explicit request for whole numbers and left alone.
    """
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal, str)):
        raise ConversionError("The amount must be provided as a number or a string representation of a number.")

    if isinstance(desired_max, bool) or not isinstance(desired_max, int):
        raise ValueError("Please provide the desired max as an integer.")

    value = to_decimal(amount)
    if value.is_zero() or not value.is_finite():
        return desired_max

    max_digits = desired_max

    if max_digits == 0:
        return 0

    while is_formatted_result_zero(amount, max_digits) and max_digits < MAX_NUMBER_FORMAT_DISPLAY_DECIMALS:
        max_digits += 1

    return max_digits


class CurrencyFormatter:
    """Formats, converts and renders amounts for display."""

    def __init__(
        self,
        registry: CurrencyRegistry,
        rate_cache: ExchangeRateCache,
        translator: Translator,
        local_settings: LocalSettings | None = None,
        jinja_env: Environment | None = None,
    ) -> None:
        self.registry = registry
        self.rate_cache = rate_cache
        self.translator = translator
        local_settings = local_settings or LocalSettings()
        self.locale = local_settings.locale
        self.btc_unit = local_settings.bitcoin_unit
        self.jinja_env = jinja_env or default_jinja_env()
        self.logger = logging.getLogger(self.__class__.__name__)

    def _babel_locale(self, locale: str) -> Locale:
        try:
            return Locale.parse(standardize_language(locale))
        except (UnknownLocaleError, ValueError) as exc:
            self.logger.warning("Falling back to en_US for locale %s: %s", locale, exc)
            return Locale.parse("en_US")

    def _format_number(
        self,
        value: Decimal,
        locale: str,
        min_decimals: int,
        max_decimals: int,
        currency: str | None = None,
    ) -> str:
        babel_locale = self._babel_locale(locale)
        if currency:
            pattern = copy.copy(babel_locale.currency_formats["standard"])
        else:
            pattern = copy.copy(babel_locale.decimal_formats[None])
        pattern.frac_prec = (min_decimals, max_decimals)
        with localcontext() as ctx:
            # Room for every integer digit plus the requested fraction digits.
            ctx.prec = max(WORKING_PRECISION, value.adjusted() + max_decimals + 2)
            ctx.rounding = ROUND_HALF_UP
            if currency:
                return babel_numbers.format_currency(
                    value, currency, format=pattern, locale=babel_locale, currency_digits=False
                )
            return babel_numbers.format_decimal(value, format=pattern, locale=babel_locale)

    def format_currency(
        self,
        amount: Amount,
        currency: str,
        *,
        locale: str | None = None,
        btc_unit: str | None = None,
        use_crypto_symbol: bool = True,
        include_crypto_cur_identifier: bool = True,
        extend_max_decimals_on_zero: bool = True,
        min_display_decimals: int | None = None,
        max_display_decimals: int | None = None,
    ) -> str:
        """
        Format ``amount`` in ``currency`` for ``locale``.

        Args:
            use_crypto_symbol: Show a wallet currency's symbol (e.g. ₿) instead
                of its code when one is known.
            include_crypto_cur_identifier: Set to False to get only the number
                for crypto amounts.
            extend_max_decimals_on_zero: For positive amounts, raise the max
                decimals as needed so the result does not read as zero.

        Unrecognized codes are formatted as crypto listing currencies, since
        this only affects presentation.
        """
        locale = locale or self.locale
        btc_unit = (btc_unit or self.btc_unit).upper()

        if not isinstance(locale, str):
            raise ValueError("Please provide a locale as a string")

        if not isinstance(currency, str):
            raise ValueError("Please provide a currency as a string")

        value = to_decimal(amount)
        cur = currency.upper()

        if not value.is_finite():
            self.logger.error("Unable to format %s since it is not a finite number", amount)
            return ""

        try:
            meta = self.registry.get_cur_meta(cur)
        except UnrecognizedCurrencyError:
            meta = CurrencyMeta(is_fiat=False, is_wallet_cur=False, is_crypto_listing_cur=True, cur_data=None)
        except ValueError as exc:
            self.logger.error(
                "Unable to format the currency because the currency meta could not be obtained: %s", exc
            )
            return ""

        if min_display_decimals is None:
            min_display_decimals = 2 if meta.is_fiat else 0

        if max_display_decimals is None:
            try:
                max_display_decimals = self.registry.get_coin_divisibility(cur)
            except (LookupError, RuntimeError) as exc:
                # Only cosmetic, the amount may show more zeros than it should.
                self.logger.error("Unable to get the coin divisibility for %s: %s", cur, exc)
                max_display_decimals = DEFAULT_CRYPTO_COIN_DIVISIBILITY

        if value > 0 and extend_max_decimals_on_zero:
            max_display_decimals = get_max_display_digits(value, max_display_decimals)

        if max_display_decimals > MAX_NUMBER_FORMAT_DISPLAY_DECIMALS:
            self.logger.warning(
                "Using %s for max display decimals since it is the maximum supported",
                MAX_NUMBER_FORMAT_DISPLAY_DECIMALS,
            )
            max_display_decimals = MAX_NUMBER_FORMAT_DISPLAY_DECIMALS

        min_display_decimals = min(min_display_decimals, max_display_decimals)

        wallet = self.registry.get_wallet_currency(cur) if meta.is_wallet_cur else None

        if wallet is not None:
            cur_symbol = (use_crypto_symbol and wallet.symbol) or cur
            display_amount = value

            if cur in ("BTC", "TBTC"):
                if btc_unit in BTC_UNIT_DISPLAY:
                    cur_symbol = BTC_UNIT_DISPLAY[btc_unit]
                    display_amount = convert_btc_unit(value, btc_unit)

            formatted = self._format_number(display_amount, locale, min_display_decimals, max_display_decimals)

            if include_crypto_cur_identifier:
                if cur_symbol == wallet.symbol:
                    formatted = self.translator.t(
                        "cryptoCurrencyFormat.curSymbolAmount", locale=locale, amount=formatted, symbol=cur_symbol
                    )
                else:
                    formatted = self.translator.t(
                        "cryptoCurrencyFormat.curCodeAmount", locale=locale, amount=formatted, code=cur_symbol
                    )
            return formatted

        if meta.is_crypto_listing_cur:
            formatted = self._format_number(value, locale, min_display_decimals, max_display_decimals)
            if include_crypto_cur_identifier:
                code = cur
                if len(code) > CRYPTO_LISTING_CODE_DISPLAY_LENGTH:
                    code = f"{cur[:CRYPTO_LISTING_CODE_DISPLAY_LENGTH]}…"
                formatted = self.translator.t(
                    "cryptoCurrencyFormat.curCodeAmount", locale=locale, amount=formatted, code=code
                )
            return formatted

        return self._format_number(value, locale, min_display_decimals, max_display_decimals, currency=cur)

    def convert_and_format_currency(
        self,
        amount: Amount,
        from_cur: str,
        to_cur: str,
        *,
        skip_convert_on_error: bool = True,
        skip_convert_if_result_will_be_zero: bool = True,
        **format_options: Any,
    ) -> str:
        """Convert ``amount`` to ``to_cur`` and format it.

        Without rate data the unconverted amount is formatted in ``from_cur``
        unless ``skip_convert_on_error`` is False. The unconverted amount is
        also used when a positive amount would convert to something that
        displays as zero even at the maximum number of decimals.
        """
        outcome = self.rate_cache.try_convert(amount, from_cur, to_cur)

        if outcome.error is not None:
            if not skip_convert_on_error:
                raise outcome.error
            self.logger.debug("Showing %s unconverted: %s", from_cur, outcome.error)

        converted, output_cur = outcome.amount, outcome.currency

        if (
            skip_convert_if_result_will_be_zero
            and _is_positive(amount)
            and is_formatted_result_zero(converted, MAX_NUMBER_FORMAT_DISPLAY_DECIMALS)
        ):
            converted, output_cur = amount, from_cur

        return self.format_currency(converted, output_cur, **format_options)

    def get_currency_validity(self, cur: str) -> CurrencyValidity:
        if not isinstance(cur, str):
            raise ValueError("A currency must be provided as a string.")

        if not cur or self.registry.get_currency_by_code(cur) is None:
            return CurrencyValidity.UNRECOGNIZED_CURRENCY

        rate = self.rate_cache.get_exchange_rate(self.registry.ensure_mainnet_code(cur.upper()))
        return CurrencyValidity.VALID if rate else CurrencyValidity.EXCHANGE_RATE_MISSING

    def render_formatted_currency(
        self,
        amount: Amount,
        from_cur: str,
        to_cur: str | None = None,
        *,
        show_tooltip_on_unrecognized_cur: bool = True,
        **format_options: Any,
    ) -> Markup:
        """
        Render a localized price, or an alert with an explanation when the
        currency is unrecognized or the conversion is not possible.
        """
        if not isinstance(from_cur, str) or not from_cur:
            raise ValueError('Please provide a "from currency" as a string.')

        if to_cur is not None and not isinstance(to_cur, str):
            raise ValueError('If providing a "to currency", it must be provided as a string.')

        template = self.jinja_env.get_template(FORMATTED_CURRENCY_TEMPLATE)
        return Markup(
            template.render(
                price=amount,
                from_cur=from_cur,
                to_cur=to_cur or from_cur,
                show_tooltip_on_unrecognized_cur=show_tooltip_on_unrecognized_cur,
                format_options=format_options,
                formatter=self,
                t=self.translator.t,
            )
        )

    def render_paired_currency(self, price: Amount, from_cur: str, to_cur: str) -> str:
        """
        Render an amount along with its equivalent in a second currency, e.g.
        ``$2.33 (₿0.0002534)``. Only the base amount is shown when the second
        currency can't be shown.
        """
        from_validity = self.get_currency_validity(from_cur)
        to_validity = self.get_currency_validity(to_cur)
        formatted_base = self.format_currency(price, from_cur)

        formatted_converted = ""
        if (
            from_cur != to_cur
            and from_validity is CurrencyValidity.VALID
            and to_validity is CurrencyValidity.VALID
        ):
            formatted_converted = self.convert_and_format_currency(price, from_cur, to_cur)

        if not formatted_converted:
            return formatted_base

        return self.translator.t(
            "currencyPairing",
            locale=self.locale,
            baseCurValue=formatted_base,
            convertedCurValue=formatted_converted,
        )
