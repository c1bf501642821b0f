"""
schemas/event_schema.py — Marshmallow schemas for event endpoints.

Validation responsibility:
  - This file:
      - Field types and lengths, enum values (rounding mode, category),
        registered currency codes, tip rate range, non-negative weights and
        payments, payment method ids.
  - services/event_service.py:
      - EVENT_NOT_FOUND / GROUP_NOT_FOUND     — requires DB lookup
      - FORBIDDEN                              — requires membership lookup
      - PARTICIPANT_NOT_IN_EVENT               — requires the event's participants
      - extras / weights index range           — requires the participant count

The allocation core accepts any total, so `total` is only type-checked here
(negative totals are split literally).

IMPORTANT: Inherits from marshmallow.Schema directly.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate

from backend.warikan.errors import ErrorCode
from backend.warikan.models.currency import CURRENCIES
from backend.warikan.models.event import Category, RoundingMode
from backend.warikan.services.export_service import PAYMENT_METHODS


def _validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or contains only whitespace."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _non_negative(error: str) -> validate.Range:
    return validate.Range(min=0, error=error)


# ── Reusable field factories ───────────────────────────────────────────────
# Each schema gets its own field instances; marshmallow binds fields to the
# schema they are declared on.

def rounding_mode_field(**kwargs) -> fields.Enum:
    return fields.Enum(
        RoundingMode,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_ROUNDING_MODE},
        **kwargs,
    )


def currency_field(**kwargs) -> fields.Str:
    return fields.Str(
        validate=validate.OneOf(list(CURRENCIES), error=ErrorCode.INVALID_CURRENCY),
        **kwargs,
    )


def extras_field(**kwargs) -> fields.List:
    # Null or non-positive entries simply mean "not fixed"; the allocator
    # ignores them, so they are accepted here.
    return fields.List(fields.Int(strict=True, allow_none=True), **kwargs)


def weights_field(**kwargs) -> fields.Dict:
    # JSON object keys arrive as strings ("0", "1", ...); fields.Int parses them.
    return fields.Dict(
        keys=fields.Int(validate=_non_negative("Weight index must be >= 0.")),
        values=fields.Float(validate=_non_negative("Weight must be >= 0.")),
        **kwargs,
    )


def tip_rate_field(**kwargs) -> fields.Float:
    return fields.Float(
        validate=validate.Range(min=0, max=1, error="tip_rate must be between 0 and 1."),
        **kwargs,
    )


# ── Create event ───────────────────────────────────────────────────────────

class CreateEventSchema(Schema):
    """POST /groups/:id/events — participants are copied from the group."""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=100, error="Event name must be between 1 and 100 characters."),
            _validate_non_empty_after_trim,
        ],
    )


# ── Payments ───────────────────────────────────────────────────────────────

class UpdatePaymentsSchema(Schema):
    """
    PUT /groups/:id/events/:eid/payments

    payments: {participant_id: amount paid so far}. A null amount means "not
              recorded yet" and is treated as 0 paid by the settlement engine.
              The map replaces the stored one.
    """

    payments = fields.Dict(
        keys=fields.Str(validate=validate.Length(min=1, max=128)),
        values=fields.Float(
            allow_none=True,
            validate=_non_negative("Payment must be >= 0."),
        ),
        required=True,
    )


# ── Calculate ──────────────────────────────────────────────────────────────

class CalculateEventSchema(Schema):
    """
    POST /groups/:id/events/:eid/calculate

    Stores the allocation inputs on the event and caches the computed result.
    Omitted optional fields fall back to what the event already stores
    (rounding_mode, currency, category, payments) or to empty (extras,
    weights, memo, tip_rate).
    """

    total = fields.Int(required=True, strict=True)

    memo = fields.Str(
        load_default="",
        validate=validate.Length(max=255, error="Memo must be at most 255 characters."),
    )

    rounding_mode = rounding_mode_field(load_default=None)
    extras = extras_field(load_default=list)
    weights = weights_field(load_default=dict)
    tip_rate = tip_rate_field(load_default=0.0)
    currency = currency_field(load_default=None)

    category = fields.Enum(
        Category,
        by_value=True,
        load_default=None,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    # Optional: record payments in the same request.
    payments = fields.Dict(
        keys=fields.Str(validate=validate.Length(min=1, max=128)),
        values=fields.Float(
            allow_none=True,
            validate=_non_negative("Payment must be >= 0."),
        ),
        load_default=None,
    )


# ── Payment QR payload ─────────────────────────────────────────────────────

class PaymentPayloadSchema(Schema):
    """
    POST /groups/:id/events/:eid/export/payment

    transfer_index: position in the event's current settlement list.
    method:         one of the registered payment method ids.
    """

    transfer_index = fields.Int(
        required=True,
        strict=True,
        validate=_non_negative("transfer_index must be >= 0."),
    )
    method = fields.Str(
        required=True,
        validate=validate.OneOf(list(PAYMENT_METHODS), error=ErrorCode.INVALID_PAYMENT_METHOD),
    )
