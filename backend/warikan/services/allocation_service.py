"""
services/allocation_service.py — Splits a total across participants.

This file is the SINGLE SOURCE OF TRUTH for how an event total becomes a
per-participant owed amount. Routes, exports and the event service all call
allocate(); none of them re-derive shares.

Layer rules:
  - No Flask imports, no session, no I/O.
  - Takes plain numbers, lists and dicts; returns plain dicts and lists.
  - Total: every input produces a result. Degenerate inputs give zeroed
    (or, in even mode, possibly imbalanced) output, never an exception.

Two modes:
  Weighted  — weights is non-empty. Each share is rounded independently, then
              the whole rounding discrepancy is added to participant 0, so
              sum(details) == total always holds.
  Even      — weights is empty. Participants with a positive fixed amount pay
              exactly that; everybody else pays the rounded per-head share of
              what is left. No remainder correction is applied here, so
              sum(details) can fall short of (or exceed) the total by up to
              rest_people - 1 units.

Arithmetic is done in Decimal so that a .5 tie is a real tie and not float
noise (e.g. 1000 * 0.7 / 2).
"""

from __future__ import annotations

import logging
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Mapping, Sequence

from backend.warikan.models.event import RoundingMode

logger = logging.getLogger(__name__)


Number = int | float | Decimal


# ── Rounding ───────────────────────────────────────────────────────────────

def to_decimal(value: Number) -> Decimal:
    """Converts int/float/Decimal to Decimal via str() so 0.1 stays 0.1."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_amount(value: Number, mode: RoundingMode) -> int:
    """
    Rounds value to an integer amount under the given mode.

      FLOOR → toward −∞       ( 2.5 →  2, -2.5 → -3)
      CEIL  → toward +∞       ( 2.5 →  3, -2.5 → -2)
      ROUND → nearest, .5 away from zero ( 2.5 → 3, -2.5 → -3)
    """
    d = to_decimal(value)
    if mode == RoundingMode.FLOOR:
        rounded = d.to_integral_value(rounding=ROUND_FLOOR)
    elif mode == RoundingMode.CEIL:
        rounded = d.to_integral_value(rounding=ROUND_CEILING)
    elif mode == RoundingMode.ROUND:
        rounded = d.to_integral_value(rounding=ROUND_HALF_UP)
    else:
        raise TypeError(f"Unsupported rounding mode: {mode!r}")
    return int(rounded)


def round_half_away(value: Number) -> int:
    """Nearest integer, .5 away from zero. Used for transfers, tips and conversions."""
    return round_amount(value, RoundingMode.ROUND)


# ── Allocation ─────────────────────────────────────────────────────────────

def _weighted_split(
        total: int,
        people_count: int,
        mode: RoundingMode,
        weights: Mapping[int, Number],
) -> dict:
    # Every weight counts towards the total weight, even one keyed to an index
    # outside 0..people_count-1.
    total_weight = sum((to_decimal(w) for w in weights.values()), Decimal(0))
    if total_weight == 0:
        logger.debug("Total weight is zero; returning all-zero allocation.")
        return {"per": 0, "details": [0] * people_count}

    total_d = to_decimal(total)
    details = [
        round_amount(total_d * to_decimal(weights.get(i, 0)) / total_weight, mode)
        for i in range(people_count)
    ]

    # Participant 0 absorbs the whole rounding discrepancy.
    diff = total - sum(details)
    if diff != 0:
        details[0] += diff

    # per mirrors participant 0's share in this mode; see DESIGN.md.
    return {"per": details[0], "details": details}


def _even_split(
        total: int,
        people_count: int,
        mode: RoundingMode,
        fixed_amounts: Sequence[Number | None],
) -> dict:
    fixed: dict[int, Number] = {}
    for i in range(people_count):
        value = fixed_amounts[i] if i < len(fixed_amounts) else None
        if value is not None and value > 0:
            fixed[i] = value

    rest_people = people_count - len(fixed)
    rest_total = to_decimal(total) - sum(
        (to_decimal(v) for v in fixed.values()), Decimal(0)
    )

    if rest_people > 0:
        per = round_amount(rest_total / rest_people, mode)
    else:
        per = 0

    details = [fixed.get(i, per) for i in range(people_count)]
    return {"per": per, "details": details}


def allocate(
        total: int,
        people_count: int,
        rounding_mode: RoundingMode | str = RoundingMode.ROUND,
        fixed_amounts: Sequence[Number | None] | None = None,
        weights: Mapping[int, Number] | None = None,
) -> dict:
    """
    Allocates total across people_count participants.

    Args:
        total:         Amount to split, in integer currency units. Negative
                       totals are split literally.
        people_count:  Number of participants. <= 0 yields an empty result.
        rounding_mode: RoundingMode (or its wire value "floor"/"ceil"/"round").
        fixed_amounts: Per-index fixed contribution. None or non-positive
                       entries are not fixed. May be shorter than people_count.
                       Ignored in weighted mode.
        weights:       {index: non-negative weight}. Non-empty → weighted mode.

    Returns:
        {"per": int, "details": list} with len(details) == max(people_count, 0).
    """
    mode = RoundingMode(rounding_mode)

    if people_count <= 0:
        return {"per": 0, "details": []}

    if weights:
        return _weighted_split(total, people_count, mode, weights)

    return _even_split(total, people_count, mode, fixed_amounts or [])


# ── Total adjustments ──────────────────────────────────────────────────────

def compute_tip(total: int, tip_rate: Number) -> int:
    """Tip on top of total, rounded to the nearest unit. A zero rate gives 0."""
    if not tip_rate:
        return 0
    return round_half_away(to_decimal(total) * to_decimal(tip_rate))


def convert_amount(amount: int, rate: Number) -> int:
    """
    Scales amount by an externally supplied exchange rate.

    This is the only currency arithmetic in the system; rates are never
    fetched or inverted here.
    """
    return round_half_away(to_decimal(amount) * to_decimal(rate))
