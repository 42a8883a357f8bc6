"""Shared helpers for blueprints."""
from __future__ import annotations

from flask import current_app

from ..services.exchange_rates import ExchangeRateCache
from ..services.formatting import CurrencyFormatter
from ..services.metadata import CurrencyRegistry
from ..settings import Settings


def get_settings() -> Settings:
    return current_app.extensions["settings"]


def get_registry() -> CurrencyRegistry:
    return current_app.extensions["currency_registry"]


def get_rate_cache() -> ExchangeRateCache:
    return current_app.extensions["exchange_rates"]


def get_formatter() -> CurrencyFormatter:
    return current_app.extensions["currency_formatter"]
