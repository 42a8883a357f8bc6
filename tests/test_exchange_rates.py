import pytest

from pricefmt.services.exchange_rates import (
    ExchangeRateCache,
    ExchangeRateFetchError,
    NoExchangeRateDataError,
    exchange_rate_change,
    exchange_rate_change_for,
    fetching_exchange_rates,
)
from pricefmt.services.metadata import CurrencyConfigurationError, CurrencyRegistry
from pricefmt.services.units import ConversionError


def test_cache_starts_empty(rate_cache):
    assert dict(rate_cache.rates) == {}


def test_fetch_populates_rates_with_pivot(rate_cache, session, rates_payload):
    changed = rate_cache.fetch().result()
    assert rate_cache.rates["USD"] == 20000.0
    assert rate_cache.rates["BTC"] == 1
    assert set(changed) == set(rates_payload) | {"BTC"}
    url, kwargs = session.calls[0]
    assert url == "http://ob.test/ob/exchangerates/BTC"
    assert kwargs["timeout"] == 5


def test_pivot_coin_prefers_bitcoin(settings):
    settings.supported_wallet_currencies = ["LTC", "TBTC"]
    cache = ExchangeRateCache(settings, CurrencyRegistry.from_settings(settings))
    assert cache.pivot_coin() == "BTC"
    cache.close()


def test_pivot_coin_uses_first_mainnet_code(settings):
    settings.supported_wallet_currencies = ["TLTC", "ZEC"]
    cache = ExchangeRateCache(settings, CurrencyRegistry.from_settings(settings))
    assert cache.pivot_coin() == "LTC"
    cache.close()


def test_fetch_requires_a_wallet_currency(settings):
    settings.supported_wallet_currencies = []
    cache = ExchangeRateCache(settings, CurrencyRegistry.from_settings(settings))
    with pytest.raises(CurrencyConfigurationError):
        cache.fetch()
    cache.close()


def test_fetch_announces_request(rate_cache):
    seen = []

    def receiver(sender, future, **kwargs):
        seen.append((sender, future))

    with fetching_exchange_rates.connected_to(receiver, sender=rate_cache):
        future = rate_cache.fetch()
        future.result()

    assert seen == [(rate_cache, future)]


def test_change_events(rate_cache, session):
    rate_cache.fetch().result()
    session.queue({"USD": 21000.0, "EUR": 18000.0, "BCH": 80.0, "GBP": 15000.0})
    session.responses.pop(0)

    changes = []
    usd_previous = []
    ltc_previous = []
    gbp_previous = []

    def on_change(sender, changed, **kwargs):
        changes.append(changed)

    with exchange_rate_change.connected_to(on_change, sender=rate_cache), \
            exchange_rate_change_for("USD").connected_to(
                lambda sender, previous: usd_previous.append(previous), sender=rate_cache), \
            exchange_rate_change_for("LTC").connected_to(
                lambda sender, previous: ltc_previous.append(previous), sender=rate_cache), \
            exchange_rate_change_for("GBP").connected_to(
                lambda sender, previous: gbp_previous.append(previous), sender=rate_cache):
        rate_cache.fetch().result()

    assert changes == [["USD", "LTC", "GBP"]]
    assert usd_previous == [20000.0]
    assert ltc_previous == [250.0]
    assert gbp_previous == [None]
    assert "LTC" not in rate_cache.rates


def test_unchanged_rates_emit_nothing(loaded_cache, rates_payload):
    changes = []

    def on_change(sender, changed, **kwargs):
        changes.append(changed)

    with exchange_rate_change.connected_to(on_change, sender=loaded_cache):
        assert loaded_cache.replace_rates(rates_payload, "BTC") == []

    assert changes == []


def test_failed_fetch_keeps_previous_rates(loaded_cache, session):
    session.responses[:] = []
    session.queue({"error": "boom"}, status_code=500)
    with pytest.raises(ExchangeRateFetchError):
        loaded_cache.fetch().result()
    assert loaded_cache.rates["USD"] == 20000.0


def test_malformed_payload_is_rejected(loaded_cache, session):
    session.responses[:] = []
    session.queue(["not", "a", "mapping"])
    with pytest.raises(ExchangeRateFetchError):
        loaded_cache.fetch().result()
    session.responses[:] = []
    session.queue(ValueError("invalid json"))
    with pytest.raises(ExchangeRateFetchError):
        loaded_cache.fetch().result()
    assert loaded_cache.rates["EUR"] == 18000.0


def test_get_exchange_rate(loaded_cache):
    assert loaded_cache.get_exchange_rate("USD") == 20000.0
    assert loaded_cache.get_exchange_rate("TBTC") == 1
    assert loaded_cache.get_exchange_rate("ZEC") is None
    with pytest.raises(ValueError):
        loaded_cache.get_exchange_rate("")


def test_convert_same_currency_is_identity(rate_cache):
    amount = 12.5
    assert rate_cache.convert_currency(amount, "XYZ", "xyz") is amount
    assert rate_cache.convert_currency("3", "BTC", "TBTC") == "3"


def test_convert_with_numbers(loaded_cache):
    assert loaded_cache.convert_currency(1, "BTC", "USD") == 20000.0
    assert loaded_cache.convert_currency(100, "USD", "EUR") == pytest.approx(90.0)


def test_convert_with_strings_is_precise(loaded_cache):
    assert loaded_cache.convert_currency("1", "BTC", "USD") == "20000"
    assert loaded_cache.convert_currency("0.1", "USD", "BTC") == "0.000005"
    assert loaded_cache.convert_currency("100", "USD", "EUR") == "90"


def test_convert_without_rates(loaded_cache):
    with pytest.raises(NoExchangeRateDataError, match="ZEC"):
        loaded_cache.convert_currency(1, "ZEC", "USD")
    with pytest.raises(NoExchangeRateDataError, match="JPY"):
        loaded_cache.convert_currency(1, "USD", "JPY")


def test_convert_rejects_bad_amounts(loaded_cache):
    with pytest.raises(ConversionError):
        loaded_cache.convert_currency(None, "BTC", "USD")
    with pytest.raises(ConversionError):
        loaded_cache.convert_currency("NaN", "BTC", "USD")
    with pytest.raises(ConversionError):
        loaded_cache.convert_currency(float("nan"), "BTC", "USD")


def test_try_convert_reports_failures(loaded_cache):
    outcome = loaded_cache.try_convert(5, "ZEC", "USD")
    assert not outcome.ok
    assert outcome.converted is False
    assert outcome.amount == 5
    assert outcome.currency == "ZEC"
    assert isinstance(outcome.error, NoExchangeRateDataError)

    outcome = loaded_cache.try_convert(1, "BTC", "EUR")
    assert outcome.ok
    assert outcome.amount == 18000.0
    assert outcome.currency == "EUR"
