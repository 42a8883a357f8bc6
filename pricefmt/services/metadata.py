"""Currency classification and coin divisibility lookups."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .. import data
from ..settings import Settings, WalletCurrencyDefinition

DEFAULT_CRYPTO_COIN_DIVISIBILITY = 8
DEFAULT_FIAT_COIN_DIVISIBILITY = 2


class UnrecognizedCurrencyError(LookupError):
    def __init__(self, message: str = "The currency is not recognized.") -> None:
        super().__init__(message)


class CurrencyConfigurationError(RuntimeError):
    """Raised when required currency configuration is unavailable."""


@dataclass(frozen=True, slots=True)
class FiatCurrency:
    code: str
    name: str
    symbol: str | None = None

    @property
    def divisibility(self) -> int:
        return DEFAULT_FIAT_COIN_DIVISIBILITY


@dataclass(frozen=True, slots=True)
class WalletCurrency:
    code: str
    name: str
    coin_divisibility: int
    symbol: str | None = None
    testnet_code: str | None = None

    @property
    def divisibility(self) -> int:
        return self.coin_divisibility


@dataclass(frozen=True, slots=True)
class CryptoListingCurrency:
    # Listing currencies only exist as a code, there is no further data for them.
    code: str
    symbol: None = None

    @property
    def divisibility(self) -> int:
        return DEFAULT_CRYPTO_COIN_DIVISIBILITY


CurrencyData = Union[FiatCurrency, WalletCurrency, CryptoListingCurrency]


@dataclass(frozen=True, slots=True)
class CurrencyMeta:
    is_fiat: bool
    is_wallet_cur: bool
    is_crypto_listing_cur: bool
    cur_data: FiatCurrency | WalletCurrency | None


def _require_code(currency: object) -> str:
    if not isinstance(currency, str) or not currency:
        raise ValueError("Please provide a currency as a non-empty string.")
    return currency


class CurrencyRegistry:
    """Read-only lookups over the fiat, wallet and crypto listing registries."""

    def __init__(
        self,
        fiat: Mapping[str, Mapping[str, str]],
        wallet: Iterable[Mapping[str, object]],
        crypto_listing: Iterable[str],
        supported_wallet_curs: Iterable[str] = (),
        wallet_cur_def: Mapping[str, WalletCurrencyDefinition] | None = None,
    ) -> None:
        self._fiat: Dict[str, FiatCurrency] = {
            code.upper(): FiatCurrency(code=code.upper(), name=entry["name"], symbol=entry.get("symbol"))
            for code, entry in fiat.items()
        }
        self._wallet: Dict[str, WalletCurrency] = {}
        self._mainnet_codes: Dict[str, str] = {}
        for entry in wallet:
            currency = WalletCurrency(
                code=str(entry["code"]).upper(),
                name=str(entry["name"]),
                coin_divisibility=int(entry["coin_divisibility"]),
                symbol=entry.get("symbol"),
                testnet_code=entry.get("testnet_code"),
            )
            self._wallet[currency.code] = currency
            self._mainnet_codes[currency.code] = currency.code
            if currency.testnet_code:
                self._wallet[currency.testnet_code] = currency
                self._mainnet_codes[currency.testnet_code] = currency.code
        self._crypto_listing: Tuple[str, ...] = tuple(code.upper() for code in crypto_listing)
        self._supported_wallet_curs: List[str] = [code.upper() for code in supported_wallet_curs]
        self.wallet_cur_def = wallet_cur_def
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CurrencyRegistry":
        return cls(
            fiat=data.fiat_currencies(),
            wallet=data.wallet_currencies(),
            crypto_listing=data.crypto_listing_currencies(),
            supported_wallet_curs=settings.supported_wallet_currencies,
            wallet_cur_def=settings.wallet_currency_definitions,
        )

    def supported_wallet_currencies(self) -> List[str]:
        return list(self._supported_wallet_curs)

    def crypto_listing_currencies(self) -> Tuple[str, ...]:
        return self._crypto_listing

    def get_wallet_currency(self, code: str) -> WalletCurrency | None:
        return self._wallet.get(code.upper())

    def get_currency_by_code(self, code: str, include_wallet_curs: bool = True) -> FiatCurrency | WalletCurrency | None:
        cur = code.upper()
        if cur in self._fiat:
            return self._fiat[cur]
        if include_wallet_curs:
            return self._wallet.get(cur)
        return None

    def ensure_mainnet_code(self, code: str) -> str:
        """Map a testnet wallet code (e.g. TBTC) to its mainnet code."""
        return self._mainnet_codes.get(code, code)

    def get_cur_meta(self, currency: str) -> CurrencyMeta:
        """Return classification flags along with any currency data available."""
        cur = _require_code(currency).upper()
        fiat = self.get_currency_by_code(cur, include_wallet_curs=False)
        wallet = self.get_wallet_currency(cur)
        is_crypto_listing_cur = cur in self._crypto_listing

        if not (fiat or wallet or is_crypto_listing_cur):
            raise UnrecognizedCurrencyError()

        return CurrencyMeta(
            is_fiat=fiat is not None,
            is_wallet_cur=wallet is not None,
            is_crypto_listing_cur=is_crypto_listing_cur,
            cur_data=fiat or wallet,
        )

    def is_fiat_cur(self, currency: str) -> bool:
        return self.get_cur_meta(currency).is_fiat

    def describe(self, currency: str) -> CurrencyData:
        """Return the most specific currency record for ``currency``."""
        meta = self.get_cur_meta(currency)
        if meta.cur_data is not None:
            return meta.cur_data
        return CryptoListingCurrency(code=currency.upper())

    def get_coin_divisibility(
        self,
        currency: str,
        wallet_cur_def: Optional[Mapping[str, WalletCurrencyDefinition]] = None,
    ) -> int:
        """Return the number of decimal places between display and base units.

        When converting an integer received from the server, prefer the
        divisibility the server sent alongside it. Likewise, when sending an
        integer back, include the divisibility if the API accepts it.
        """
        cur = _require_code(currency)

        if wallet_cur_def is None:
            wallet_cur_def = self.wallet_cur_def

        if wallet_cur_def is None:
            raise CurrencyConfigurationError(
                "The wallet currency definition must be provided either per call "
                "or through the registry settings."
            )

        if cur in wallet_cur_def:
            return wallet_cur_def[cur].divisibility

        meta = self.get_cur_meta(cur)

        if meta.is_fiat:
            return DEFAULT_FIAT_COIN_DIVISIBILITY
        if meta.is_wallet_cur and isinstance(meta.cur_data, WalletCurrency):
            return meta.cur_data.coin_divisibility
        if meta.is_crypto_listing_cur:
            return DEFAULT_CRYPTO_COIN_DIVISIBILITY

        raise UnrecognizedCurrencyError()
