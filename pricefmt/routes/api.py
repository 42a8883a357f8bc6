"""JSON API endpoints."""
from __future__ import annotations

from flask import Blueprint, abort, jsonify, request

from ..models import Price, PriceValidationError
from ..services.exchange_rates import ExchangeRateFetchError, NoExchangeRateDataError
from ..services.metadata import CurrencyConfigurationError, UnrecognizedCurrencyError
from ..services.units import ConversionError, create_amount, min_value_by_coin_div
from ..settings import BITCOIN_UNITS
from .helpers import get_formatter, get_rate_cache, get_registry, get_settings

blueprint = Blueprint("api", __name__, url_prefix="/api")


def _required_arg(name: str) -> str:
    value = request.args.get(name, "").strip()
    if not value:
        abort(400, description=f"Missing '{name}' parameter")
    return value


def _format_options() -> dict:
    options: dict = {}
    locale = request.args.get("locale")
    if locale:
        options["locale"] = locale
    btc_unit = request.args.get("btc_unit")
    if btc_unit:
        if btc_unit.upper() not in BITCOIN_UNITS:
            abort(400, description=f"btc_unit must be one of {', '.join(BITCOIN_UNITS)}")
        options["btc_unit"] = btc_unit
    max_decimals = request.args.get("max_decimals", type=int)
    if max_decimals is not None:
        if max_decimals < 0:
            abort(400, description="max_decimals cannot be negative")
        options["max_display_decimals"] = max_decimals
    return options


@blueprint.route("/rates")
def rates():
    return jsonify(dict(get_rate_cache().rates))


@blueprint.route("/rates/refresh", methods=["POST"])
def refresh_rates():
    cache = get_rate_cache()
    try:
        changed = cache.fetch().result()
    except (ExchangeRateFetchError, CurrencyConfigurationError) as exc:
        abort(502, description=str(exc))
    return jsonify({"changed": changed, "rates": dict(cache.rates)})


@blueprint.route("/format")
def format_amount():
    amount = _required_arg("amount")
    currency = _required_arg("currency")
    options = _format_options()
    try:
        formatted = get_formatter().format_currency(amount, currency, **options)
    except ConversionError as exc:
        abort(400, description=str(exc))
    return jsonify({"amount": amount, "currency": currency.upper(), "formatted": formatted})


@blueprint.route("/convert")
def convert():
    amount = _required_arg("amount")
    from_cur = _required_arg("from").upper()
    to_cur = _required_arg("to").upper()
    try:
        converted = get_rate_cache().convert_currency(amount, from_cur, to_cur)
    except NoExchangeRateDataError as exc:
        abort(404, description=str(exc))
    except ConversionError as exc:
        abort(400, description=str(exc))
    return jsonify(
        {
            "amount": converted,
            "from": from_cur,
            "to": to_cur,
            "formatted": get_formatter().format_currency(converted, to_cur),
        }
    )


@blueprint.route("/validity/<code>")
def validity(code: str):
    return jsonify({"code": code.upper(), "validity": get_formatter().get_currency_validity(code).value})


@blueprint.route("/currencies/<code>")
def currency(code: str):
    registry = get_registry()
    try:
        meta = registry.get_cur_meta(code)
        record = registry.describe(code)
    except UnrecognizedCurrencyError as exc:
        abort(404, description=str(exc))
    try:
        divisibility = registry.get_coin_divisibility(code.upper())
    except (LookupError, RuntimeError):
        divisibility = record.divisibility
    return jsonify(
        {
            "code": record.code,
            "symbol": record.symbol,
            "divisibility": divisibility,
            "min_value": min_value_by_coin_div(divisibility, return_in_standard_notation=True),
            "is_fiat": meta.is_fiat,
            "is_wallet_currency": meta.is_wallet_cur,
            "is_crypto_listing_currency": meta.is_crypto_listing_cur,
        }
    )


@blueprint.route("/prices", methods=["POST"])
def validate_price():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="Expected a JSON object")
    try:
        price = Price.from_dict(payload, local_currency=get_settings().local.local_currency)
    except PriceValidationError as exc:
        return jsonify({"errors": exc.errors}), 400
    price.currency_code = price.currency_code.upper()
    try:
        amount = create_amount(price.amount, price.currency_code, get_registry())
        server_price = Price.convert_price_out(price.to_dict())
    except (ConversionError, OverflowError) as exc:
        abort(400, description=f"Unable to convert the price amount: {exc}")
    return jsonify({"price": price.to_dict(), "amount": amount, "server_price": server_price})
