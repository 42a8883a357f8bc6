"""WTForms definitions for the web interface."""
from __future__ import annotations

from flask_wtf import FlaskForm
from wtforms import FloatField, StringField, SubmitField
from wtforms.validators import DataRequired, InputRequired, Length, Optional, ValidationError

from .models import Price


def positive_price(form, field) -> None:
    if field.data is None:
        # Unparseable input is already reported by the field itself.
        return
    errors = Price.validate({"amount": field.data, "currency_code": form.currency_code.data}) or {}
    for message in errors.get("amount", []):
        raise ValidationError(message)


class PriceForm(FlaskForm):
    amount = FloatField(
        "Amount",
        validators=[InputRequired(message="Please provide a price."), positive_price],
    )
    currency_code = StringField(
        "Currency",
        validators=[DataRequired(message="Please provide a currency code."), Length(max=16)],
    )
    convert_to = StringField("Show in", validators=[Optional(), Length(max=16)])
    submit = SubmitField("Preview")

    def to_price(self) -> Price:
        return Price(amount=self.amount.data, currency_code=self.currency_code.data.strip().upper())
