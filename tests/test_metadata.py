import pytest

from pricefmt.services.metadata import (
    CryptoListingCurrency,
    CurrencyConfigurationError,
    CurrencyRegistry,
    FiatCurrency,
    UnrecognizedCurrencyError,
    WalletCurrency,
)
from pricefmt.settings import WalletCurrencyDefinition


def test_fiat_meta(registry):
    meta = registry.get_cur_meta("usd")
    assert meta.is_fiat is True
    assert meta.is_wallet_cur is False
    assert meta.is_crypto_listing_cur is False
    assert isinstance(meta.cur_data, FiatCurrency)
    assert meta.cur_data.symbol == "$"


def test_wallet_currency_can_also_be_a_listing_currency(registry):
    meta = registry.get_cur_meta("BTC")
    assert meta.is_fiat is False
    assert meta.is_wallet_cur is True
    assert meta.is_crypto_listing_cur is True
    assert isinstance(meta.cur_data, WalletCurrency)
    assert meta.cur_data.symbol == "₿"


def test_testnet_codes_resolve_to_wallet_data(registry):
    meta = registry.get_cur_meta("TBTC")
    assert meta.is_wallet_cur is True
    assert meta.cur_data.code == "BTC"
    assert registry.ensure_mainnet_code("TBTC") == "BTC"
    assert registry.ensure_mainnet_code("USD") == "USD"


def test_crypto_listing_currency_has_no_data(registry):
    meta = registry.get_cur_meta("DOGE")
    assert meta.is_crypto_listing_cur is True
    assert meta.cur_data is None
    assert registry.describe("doge") == CryptoListingCurrency(code="DOGE")


def test_unrecognized_currency(registry):
    with pytest.raises(UnrecognizedCurrencyError):
        registry.get_cur_meta("NOTACOIN")
    with pytest.raises(ValueError):
        registry.get_cur_meta("")


def test_is_fiat_cur(registry):
    assert registry.is_fiat_cur("EUR") is True
    assert registry.is_fiat_cur("LTC") is False


def test_coin_divisibility_defaults(registry):
    assert registry.get_coin_divisibility("USD") == 2
    assert registry.get_coin_divisibility("BTC") == 8
    assert registry.get_coin_divisibility("DOGE") == 8
    assert registry.get_coin_divisibility("ETH") == 18


def test_coin_divisibility_prefers_explicit_definitions(registry):
    explicit = {"BTC": WalletCurrencyDefinition(code="BTC", divisibility=9)}
    assert registry.get_coin_divisibility("BTC", wallet_cur_def=explicit) == 9
    assert registry.get_coin_divisibility("USD", wallet_cur_def=explicit) == 2


def test_coin_divisibility_uses_registry_definitions(settings):
    settings.wallet_currency_definitions = {"ZEC": WalletCurrencyDefinition(code="ZEC", divisibility=6)}
    registry = CurrencyRegistry.from_settings(settings)
    assert registry.get_coin_divisibility("ZEC") == 6


def test_coin_divisibility_requires_definition_source(settings):
    settings.wallet_currency_definitions = None
    registry = CurrencyRegistry.from_settings(settings)
    with pytest.raises(CurrencyConfigurationError):
        registry.get_coin_divisibility("BTC")
    assert registry.get_coin_divisibility("BTC", wallet_cur_def={}) == 8


def test_coin_divisibility_unrecognized(registry):
    with pytest.raises(UnrecognizedCurrencyError):
        registry.get_coin_divisibility("NOTACOIN")


def test_get_currency_by_code(registry):
    assert registry.get_currency_by_code("gbp").name == "British Pound"
    assert registry.get_currency_by_code("LTC").code == "LTC"
    assert registry.get_currency_by_code("LTC", include_wallet_curs=False) is None
    assert registry.get_currency_by_code("DOGE") is None
