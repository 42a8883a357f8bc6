"""Static currency registries bundled with the package."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Tuple

_DATA_DIR = Path(__file__).resolve().parent


def _load(filename: str) -> Any:
    with (_DATA_DIR / filename).open(encoding="utf-8") as fh:
        return json.load(fh)


@lru_cache(maxsize=None)
def fiat_currencies() -> Dict[str, Dict[str, str]]:
    """Return the fiat registry keyed by ISO 4217 code."""
    return _load("fiat_currencies.json")


@lru_cache(maxsize=None)
def wallet_currencies() -> Tuple[Dict[str, Any], ...]:
    return tuple(_load("wallet_currencies.json"))


@lru_cache(maxsize=None)
def crypto_listing_currencies() -> Tuple[str, ...]:
    return tuple(sorted(code.upper() for code in _load("crypto_listing_currencies.json")))
