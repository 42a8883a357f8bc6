"""Application configuration loading utilities."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List
import json
import os

from dotenv import load_dotenv

from . import data

load_dotenv()

BITCOIN_UNITS = ("BTC", "MBTC", "UBTC", "SATOSHI")


@dataclass(slots=True)
class LocalSettings:
    """Per-user display preferences used when formatting amounts."""

    locale: str = "en-US"
    bitcoin_unit: str = "BTC"
    local_currency: str = "USD"


@dataclass(slots=True)
class WalletCurrencyDefinition:
    """Divisibility the marketplace server reports for one of its wallets."""

    code: str
    divisibility: int


@dataclass(slots=True)
class Settings:
    """Container for runtime configuration derived from the environment."""

    secret_key: str
    server_url: str
    request_timeout: int
    sync_interval: int = 300
    supported_wallet_currencies: List[str] = field(default_factory=list)
    wallet_currency_definitions: Dict[str, WalletCurrencyDefinition] | None = None
    local: LocalSettings = field(default_factory=LocalSettings)
    log_level: str | None = None


def _registry_divisibility(code: str) -> int | None:
    for entry in data.wallet_currencies():
        if code in (entry["code"], entry.get("testnet_code")):
            return entry["coin_divisibility"]
    return None


def _build_wallet_definitions(codes: List[str]) -> Dict[str, WalletCurrencyDefinition]:
    raw = os.getenv("WALLET_CURRENCY_DEFINITIONS")
    if raw:
        parsed = json.loads(raw)
        return {
            code.upper(): WalletCurrencyDefinition(code=code.upper(), divisibility=int(divisibility))
            for code, divisibility in parsed.items()
        }
    definitions: Dict[str, WalletCurrencyDefinition] = {}
    for code in codes:
        divisibility = _registry_divisibility(code)
        if divisibility is None:
            # Unknown wallets fall through to the registry lookups at format time.
            continue
        definitions[code] = WalletCurrencyDefinition(code=code, divisibility=divisibility)
    return definitions


def _load_local_settings() -> LocalSettings:
    local = LocalSettings()
    local.locale = os.getenv("LOCALE", local.locale)
    local.bitcoin_unit = os.getenv("BITCOIN_UNIT", local.bitcoin_unit).upper()
    if local.bitcoin_unit not in BITCOIN_UNITS:
        raise ValueError(f"BITCOIN_UNIT must be one of {', '.join(BITCOIN_UNITS)}")
    local.local_currency = os.getenv("LOCAL_CURRENCY", local.local_currency).upper()
    return local


def get_settings() -> Settings:
    """Return application settings derived from environment variables."""

    secret_key = os.getenv("SECRET_KEY", "change-me")
    server_url = os.getenv("SERVER_URL", "http://localhost:4002/")
    if not server_url.endswith("/"):
        server_url += "/"
    request_timeout = int(os.getenv("REQUEST_TIMEOUT", "30"))
    sync_interval = max(int(os.getenv("SYNC_INTERVAL", "300")), 1)
    wallets_env = os.getenv("WALLET_CURRENCIES", "BTC,BCH,LTC,ZEC")
    wallets = [code.strip().upper() for code in wallets_env.split(",") if code.strip()]
    return Settings(
        secret_key=secret_key,
        server_url=server_url,
        request_timeout=request_timeout,
        sync_interval=sync_interval,
        supported_wallet_currencies=wallets,
        wallet_currency_definitions=_build_wallet_definitions(wallets),
        local=_load_local_settings(),
        log_level=os.getenv("LOG_LEVEL") or None,
    )
