"""Price preview page."""
from __future__ import annotations

from flask import Blueprint, flash, render_template, request

from ..forms import PriceForm
from .helpers import get_formatter, get_rate_cache, get_settings

blueprint = Blueprint("home", __name__)


@blueprint.route("/", methods=["GET", "POST"])
def index():
    settings = get_settings()
    form = PriceForm()
    if not form.currency_code.data:
        form.currency_code.data = settings.local.local_currency
    preview = None
    if form.validate_on_submit():
        price = form.to_price()
        to_cur = (form.convert_to.data or settings.local.local_currency).strip().upper()
        preview = {
            "price": price,
            "to_cur": to_cur,
            "paired": get_formatter().render_paired_currency(price.amount, price.currency_code, to_cur),
        }
    elif request.method == "POST":
        flash("Please correct the errors in the form", "danger")
    return render_template(
        "home/index.html",
        form=form,
        preview=preview,
        rates=get_rate_cache().rates,
        local_currency=settings.local.local_currency,
    )
