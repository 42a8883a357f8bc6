"""Blueprint registration."""
from __future__ import annotations

from flask import Flask

from . import api, home


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(home.blueprint)
    app.register_blueprint(api.blueprint)
