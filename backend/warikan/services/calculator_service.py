"""
services/calculator_service.py — One pass through the core: tip, allocate, settle.

run_calculation() is the pipeline shared by the stateless quick calculator
(POST /calculate) and by events (calculate, preview, exports). It works on
participant indices only; event_service maps participant ids to indices
before calling it.

Layer rules:
  - No Flask imports, no session.
  - Index range problems in caller input are AppError(INVALID_FIELD, 422).
    Imbalanced numbers are never errors: they come back as warnings.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping, Sequence

from backend.warikan.errors import AppError, ErrorCode, WarningCode
from backend.warikan.models.currency import CURRENCIES, get_currency
from backend.warikan.models.event import Category, RoundingMode
from backend.warikan.services.allocation_service import (
    Number,
    allocate,
    compute_tip,
    convert_amount,
    to_decimal,
)
from backend.warikan.services.export_service import PAYMENT_METHODS
from backend.warikan.services.settlement_service import EPSILON, settle

logger = logging.getLogger(__name__)

TIP_OPTIONS = (0.0, 0.05, 0.1, 0.15, 0.2)


# ── Input checks ───────────────────────────────────────────────────────────

def validate_indices(
        people_count: int,
        extras: Sequence | None = None,
        weights: Mapping[int, Number] | None = None,
        paid: Sequence | None = None,
) -> None:
    """
    Raises AppError(INVALID_FIELD, 422) when an index-keyed input refers to a
    participant that does not exist.
    """
    if extras and len(extras) > people_count:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            f"extras has {len(extras)} entries but there are only {people_count} participants.",
            422,
            field="extras",
        )
    if weights:
        bad = sorted(i for i in weights if not 0 <= i < people_count)
        if bad:
            raise AppError(
                ErrorCode.INVALID_FIELD,
                f"Weight index {bad[0]} is outside 0..{people_count - 1}.",
                422,
                field="weights",
            )
    if paid and len(paid) > people_count:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            f"payments has {len(paid)} entries but there are only {people_count} participants.",
            422,
            field="payments",
        )


# ── Pipeline ───────────────────────────────────────────────────────────────

def _warnings_for(total_with_tip: int, details: list, paid: Sequence[Number | None]) -> list[dict]:
    warnings: list[dict] = []

    allocated = sum((to_decimal(d) for d in details), Decimal(0))
    if details and allocated != total_with_tip:
        warnings.append({
            "code": WarningCode.SUM_MISMATCH,
            "message": (
                f"Allocated shares add up to {allocated}, not {total_with_tip}. "
                f"The per-person remainder is not redistributed."
            ),
        })

    recorded = [p for p in paid if p is not None]
    if recorded:
        paid_total = sum((to_decimal(p) for p in recorded), Decimal(0))
        if abs(paid_total - allocated) >= EPSILON:
            warnings.append({
                "code": WarningCode.UNBALANCED_PAYMENTS,
                "message": (
                    f"Recorded payments add up to {paid_total}, but {allocated} "
                    f"is owed. Some balances are left unsettled."
                ),
            })

    return warnings


def run_calculation(
        total: int,
        people_count: int,
        rounding_mode: RoundingMode,
        extras: Sequence[Number | None] = (),
        weights: Mapping[int, Number] | None = None,
        tip_rate: Number = 0,
        paid: Sequence[Number | None] = (),
) -> tuple[dict, list[dict]]:
    """
    Tip → allocate (on total + tip) → settle.

    Returns:
        ({"total", "tip", "total_with_tip", "per", "details", "settlements"},
         warnings)
    """
    validate_indices(people_count, extras, weights, paid)

    tip = compute_tip(total, tip_rate)
    total_with_tip = total + tip

    allocation = allocate(
        total_with_tip,
        people_count,
        rounding_mode,
        fixed_amounts=list(extras),
        weights=weights,
    )
    settlements = settle(allocation["details"], paid)

    result = {
        "total": total,
        "tip": tip,
        "total_with_tip": total_with_tip,
        "per": allocation["per"],
        "details": allocation["details"],
        "settlements": settlements,
    }
    warnings = _warnings_for(total_with_tip, allocation["details"], paid)
    if warnings:
        logger.debug("Calculation produced warnings: %s", [w["code"] for w in warnings])
    return result, warnings


# ── Quick calculator ───────────────────────────────────────────────────────

def default_names(names: Sequence[str], people_count: int) -> list[str]:
    """Fills blanks and the missing tail with "Person N" (1-based)."""
    return [
        (names[i].strip() if i < len(names) and names[i] and names[i].strip() else f"Person {i + 1}")
        for i in range(people_count)
    ]


def calculate(
        data: dict,
        default_currency: str = "JPY",
        default_rounding: RoundingMode | str = RoundingMode.ROUND,
) -> tuple[dict, list[dict]]:
    """
    Stateless calculation for POST /calculate.

    Args:
        data: QuickCalculateSchema output.

    Returns:
        (result dict, warnings)
    """
    people = data["people"]
    currency = get_currency(data.get("currency"), default_currency)
    rounding = data.get("rounding_mode") or RoundingMode(default_rounding)

    result, warnings = run_calculation(
        total=data["total"],
        people_count=people,
        rounding_mode=rounding,
        extras=data.get("extras") or [],
        weights=data.get("weights") or {},
        tip_rate=data.get("tip_rate") or 0,
        paid=data.get("payments") or [],
    )

    result.update({
        "tip_rate": data.get("tip_rate") or 0,
        "rounding_mode": rounding.value,
        "currency": currency.code,
        "names": default_names(data.get("names") or [], people),
        "memo": data.get("memo", ""),
    })

    if data.get("convert"):
        result["converted"] = {
            "currency": currency.code,
            "rate": currency.rate,
            "total_with_tip": convert_amount(result["total_with_tip"], currency.rate),
            "per": convert_amount(result["per"], currency.rate),
            "details": [convert_amount(d, currency.rate) for d in result["details"]],
        }

    return result, warnings


def calculation_options() -> dict:
    """Choices offered to clients: GET /calculate/options."""
    return {
        "rounding_modes": [m.value for m in RoundingMode],
        "tip_options": list(TIP_OPTIONS),
        "currencies": [c._asdict() for c in CURRENCIES.values()],
        "categories": [c.value for c in Category],
        "payment_methods": [{"id": k, "name": v} for k, v in PAYMENT_METHODS.items()],
    }
