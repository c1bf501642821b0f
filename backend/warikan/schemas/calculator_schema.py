"""
schemas/calculator_schema.py — Schema for the stateless quick calculator.

POST /calculate takes everything by participant index: there is no group,
no event and nothing is stored.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from backend.warikan.schemas.event_schema import (
    currency_field,
    extras_field,
    rounding_mode_field,
    tip_rate_field,
    weights_field,
)

MAX_PEOPLE = 100


class QuickCalculateSchema(Schema):

    total = fields.Int(required=True, strict=True)

    people = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(
            min=0,
            max=MAX_PEOPLE,
            error=f"people must be between 0 and {MAX_PEOPLE}.",
        ),
    )

    rounding_mode = rounding_mode_field(load_default=None)
    extras = extras_field(load_default=list)
    weights = weights_field(load_default=dict)
    tip_rate = tip_rate_field(load_default=0.0)
    currency = currency_field(load_default=None)

    # Amount paid so far, by index; null = not recorded.
    payments = fields.List(
        fields.Float(
            allow_none=True,
            validate=validate.Range(min=0, error="Payment must be >= 0."),
        ),
        load_default=list,
    )

    names = fields.List(
        fields.Str(validate=validate.Length(max=100)),
        load_default=list,
    )

    memo = fields.Str(
        load_default="",
        validate=validate.Length(max=255, error="Memo must be at most 255 characters."),
    )

    # Amounts are entered in the base currency (JPY); when true the response
    # also carries them scaled into `currency`.
    convert = fields.Bool(load_default=False)
