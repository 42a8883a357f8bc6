"""WSGI entry point and CLI helpers."""
from __future__ import annotations

import click

from pricefmt import create_app
from pricefmt.services.exchange_rates import ExchangeRateFetchError

app = create_app()


@app.cli.command("rates")
def fetch_rates() -> None:
    """Fetch the current exchange rates and print them."""
    cache = app.extensions["exchange_rates"]
    try:
        cache.fetch().result()
    except ExchangeRateFetchError as exc:
        raise click.ClickException(f"Unable to fetch exchange rates: {exc}") from exc
    for code, rate in sorted(cache.rates.items()):
        click.echo(f"{code}\t{rate}")


@app.cli.command("format")
@click.argument("amount")
@click.argument("currency")
@click.option("--to", "to_cur", default=None, help="Also show the amount converted to this currency")
@click.option("--locale", default=None, help="Locale to format for, e.g. de-DE")
def format_amount(amount: str, currency: str, to_cur: str | None, locale: str | None) -> None:
    """Format AMOUNT in CURRENCY the way the client displays it."""
    formatter = app.extensions["currency_formatter"]
    options = {"locale": locale} if locale else {}
    if to_cur:
        cache = app.extensions["exchange_rates"]
        try:
            cache.fetch().result()
        except ExchangeRateFetchError as exc:
            click.echo(f"Showing unconverted amount: {exc}", err=True)
        click.echo(formatter.convert_and_format_currency(amount, currency, to_cur, **options))
    else:
        click.echo(formatter.format_currency(amount, currency, **options))


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000)
