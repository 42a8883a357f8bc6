"""Polling worker that keeps the exchange rate cache fresh."""
from __future__ import annotations

import logging
import time

import click

from . import create_app
from .services.exchange_rates import ExchangeRateCache, ExchangeRateFetchError, exchange_rate_change

logger = logging.getLogger(__name__)


def _log_changes(sender: ExchangeRateCache, changed: list[str], **_: object) -> None:
    rates = sender.rates
    logger.info("Updated rates: %s", ", ".join(f"{code}={rates.get(code)}" for code in changed))


def sync_once(cache: ExchangeRateCache) -> bool:
    """Fetch rates once, returning False when the refresh failed."""
    try:
        cache.fetch().result()
    except ExchangeRateFetchError as exc:
        logger.warning("Exchange rate refresh failed, keeping previous rates: %s", exc)
        return False
    return True


@click.command()
@click.option("--interval", type=int, default=None, help="Polling interval in seconds")
@click.option("--once", is_flag=True, help="Fetch a single time and exit")
def main(interval: int | None, once: bool) -> None:
    app = create_app()
    with app.app_context():
        cache = app.extensions["exchange_rates"]
        settings = app.extensions["settings"]
        interval = interval or settings.sync_interval
        logger.info("Starting exchange rate syncer for %s", cache.pivot_coin())
        with exchange_rate_change.connected_to(_log_changes, sender=cache):
            try:
                while True:
                    sync_once(cache)
                    if once:
                        break
                    time.sleep(interval)
            finally:
                cache.close()


if __name__ == "__main__":  # pragma: no cover
    main()
