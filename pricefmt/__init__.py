"""Application factory."""
from __future__ import annotations

import requests
from flask import Flask
from flask_wtf import CSRFProtect

from .i18n import Translator, load_catalogs
from .logging_config import configure_logging
from .routes import register_blueprints
from .services.exchange_rates import ExchangeRateCache
from .services.formatting import CurrencyFormatter
from .services.metadata import CurrencyRegistry
from .settings import get_settings

csrf = CSRFProtect()


def create_app(session: requests.Session | None = None) -> Flask:
    settings = get_settings()
    app = Flask(__name__, template_folder="templates", static_folder=None)
    app.config.update(SECRET_KEY=settings.secret_key)

    configure_logging(debug=app.debug, level=settings.log_level)

    csrf.init_app(app)

    registry = CurrencyRegistry.from_settings(settings)
    rate_cache = ExchangeRateCache(settings, registry, session=session)
    translator = Translator(load_catalogs(), language=settings.local.locale)
    formatter = CurrencyFormatter(
        registry,
        rate_cache,
        translator,
        local_settings=settings.local,
        jinja_env=app.jinja_env,
    )

    app.extensions["settings"] = settings
    app.extensions["currency_registry"] = registry
    app.extensions["exchange_rates"] = rate_cache
    app.extensions["currency_formatter"] = formatter

    app.jinja_env.globals.update(
        formatted_currency=formatter.render_formatted_currency,
        paired_currency=formatter.render_paired_currency,
        t=translator.t,
    )

    register_blueprints(app)
    csrf.exempt(app.blueprints["api"])

    return app
