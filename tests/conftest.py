from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
import requests

from pricefmt import create_app
from pricefmt.i18n import Translator, load_catalogs
from pricefmt.services.exchange_rates import ExchangeRateCache
from pricefmt.services.formatting import CurrencyFormatter
from pricefmt.services.metadata import CurrencyRegistry
from pricefmt.settings import LocalSettings, Settings, WalletCurrencyDefinition

RATES = {"USD": 20000.0, "EUR": 18000.0, "BCH": 80.0, "LTC": 250.0}


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session`` and records requested URLs."""

    def __init__(self, payload=None, status_code=200):
        self.responses = []
        self.calls = []
        if payload is not None:
            self.queue(payload, status_code)

    def queue(self, payload, status_code=200):
        self.responses.append(FakeResponse(payload, status_code))

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


@pytest.fixture()
def rates_payload():
    return dict(RATES)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        secret_key="testing-secret",
        server_url="http://ob.test/",
        request_timeout=5,
        supported_wallet_currencies=["BTC", "BCH", "LTC", "ZEC"],
        wallet_currency_definitions={
            code: WalletCurrencyDefinition(code=code, divisibility=8) for code in ("BTC", "BCH", "LTC", "ZEC")
        },
        local=LocalSettings(),
    )


@pytest.fixture()
def registry(settings) -> CurrencyRegistry:
    return CurrencyRegistry.from_settings(settings)


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession(dict(RATES))


@pytest.fixture()
def rate_cache(settings, registry, session):
    cache = ExchangeRateCache(settings, registry, session=session)
    yield cache
    cache.close()


@pytest.fixture()
def loaded_cache(rate_cache):
    rate_cache.replace_rates(dict(RATES), "BTC")
    return rate_cache


@pytest.fixture()
def translator() -> Translator:
    return Translator(load_catalogs())


@pytest.fixture()
def formatter(registry, loaded_cache, translator) -> CurrencyFormatter:
    return CurrencyFormatter(registry, loaded_cache, translator, local_settings=LocalSettings())


@pytest.fixture()
def app(monkeypatch: pytest.MonkeyPatch, session: FakeSession):
    monkeypatch.setenv("SECRET_KEY", "testing-secret")
    monkeypatch.setenv("SERVER_URL", "http://ob.test")
    monkeypatch.setenv("WALLET_CURRENCIES", "BTC,BCH,LTC,ZEC")
    monkeypatch.delenv("WALLET_CURRENCY_DEFINITIONS", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.setenv("LOCALE", "en-US")
    monkeypatch.setenv("BITCOIN_UNIT", "BTC")
    monkeypatch.setenv("LOCAL_CURRENCY", "USD")

    application = create_app(session=session)
    application.config.update(TESTING=True, WTF_CSRF_ENABLED=False)
    yield application

    application.extensions["exchange_rates"].close()


@pytest.fixture()
def client(app):
    return app.test_client()
