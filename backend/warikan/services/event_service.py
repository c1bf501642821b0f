"""
services/event_service.py — Event business logic.

An event stores the allocation inputs (total, rounding mode, fixed amounts,
weights, tip rate), the payments recorded so far and the last calculated
result. The core works on participant indices; this module owns the mapping
between the event's participant ids and those indices.

Payments:
  Stored as {participant_id: amount | null}. Null, or a participant missing
  from the map, means "not recorded": the settlement engine counts it as 0
  paid and exports show 0.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
  - Membership (403) is checked through group_service.require_member.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.warikan.errors import AppError, ErrorCode
from backend.warikan.models.currency import get_currency
from backend.warikan.models.event import Category, Event, RoundingMode
from backend.warikan.services.calculator_service import run_calculation
from backend.warikan.services.group_service import require_member

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_event_or_404(group_id: int, event_id: int, session: Session) -> Event:
    """EVENT_NOT_FOUND (404) also covers an event that belongs to another group."""
    event = session.get(Event, event_id)
    if event is None or event.group_id != group_id:
        raise AppError(
            ErrorCode.EVENT_NOT_FOUND,
            f"Event {event_id} does not exist in group {group_id}.",
            404,
        )
    return event


def _normalize_amount(value):
    """Whole floats from JSON (3000.0) are stored as ints."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _normalize_payments(payments: dict) -> dict:
    return {pid: _normalize_amount(amount) for pid, amount in payments.items()}


def _check_participants(event: Event, payments: dict) -> None:
    known = set(event.participant_ids)
    for pid in payments:
        if pid not in known:
            raise AppError(
                ErrorCode.PARTICIPANT_NOT_IN_EVENT,
                f"Participant {pid!r} is not part of event {event.id}.",
                422,
                field="payments",
            )


def _weights_by_index(weights: dict | None) -> dict[int, float]:
    # JSON object keys come back as strings.
    return {int(k): v for k, v in (weights or {}).items()}


def _paid_vector(event: Event) -> list:
    payments = event.payments or {}
    return [payments.get(pid) for pid in event.participant_ids]


def _compute(event: Event) -> tuple[dict, list[dict]]:
    """Runs the core over what the event currently stores."""
    return run_calculation(
        total=event.total,
        people_count=len(event.participants or []),
        rounding_mode=event.rounding_mode,
        extras=event.extras or [],
        weights=_weights_by_index(event.weights),
        tip_rate=event.tip_rate or 0,
        paid=_paid_vector(event),
    )


def _touch(event: Event) -> None:
    event.updated_at = datetime.now(timezone.utc)


def _build_event_dict(event: Event) -> dict:
    return {
        "id": event.id,
        "group_id": event.group_id,
        "name": event.name,
        "participants": list(event.participants or []),
        "total": event.total,
        "memo": event.memo,
        "rounding_mode": event.rounding_mode.value,
        "extras": list(event.extras or []),
        "weights": dict(event.weights or {}),
        "payments": dict(event.payments or {}),
        "tip_rate": event.tip_rate,
        "currency": event.currency,
        "category": event.category.value,
        "result": event.result,
        "created_at": event.created_at.isoformat() if event.created_at else None,
        "updated_at": event.updated_at.isoformat() if event.updated_at else None,
    }


# ── Public service functions ───────────────────────────────────────────────

def create_event(
        group_id: int,
        caller_id: str,
        name: str,
        session: Session,
        default_currency: str = "JPY",
        default_rounding: RoundingMode | str = RoundingMode.ROUND,
) -> dict:
    """
    Creates an event whose participants are the group's current members.
    Payments start empty and there is no result until the first calculate.
    """
    group = require_member(group_id, caller_id, session)

    event = Event(
        group_id=group.id,
        name=name.strip(),
        participants=[m.to_participant() for m in group.members],
        total=0,
        memo="",
        rounding_mode=RoundingMode(default_rounding),
        extras=[],
        weights={},
        payments={},
        tip_rate=0.0,
        currency=get_currency(default_currency).code,
        category=Category.OTHER,
        result=None,
    )
    session.add(event)
    session.flush()

    logger.info("Event %s created in group %s", event.id, group_id)
    return _build_event_dict(event)


def list_events(group_id: int, caller_id: str, session: Session) -> list[dict]:
    """Events of the group, newest first."""
    require_member(group_id, caller_id, session)

    stmt = (
        select(Event)
        .where(Event.group_id == group_id)
        .order_by(Event.created_at.desc(), Event.id.desc())
    )
    return [_build_event_dict(e) for e in session.execute(stmt).scalars().all()]


def get_event(group_id: int, event_id: int, caller_id: str, session: Session) -> dict:
    require_member(group_id, caller_id, session)
    return _build_event_dict(_get_event_or_404(group_id, event_id, session))


def update_payments(
        group_id: int,
        event_id: int,
        caller_id: str,
        payments: dict,
        session: Session,
) -> dict:
    """
    Replaces the event's payments map.

    Raises:
      AppError(PARTICIPANT_NOT_IN_EVENT, 422) -- a key is not a participant id
    """
    require_member(group_id, caller_id, session)
    event = _get_event_or_404(group_id, event_id, session)

    _check_participants(event, payments)
    event.payments = _normalize_payments(payments)
    _touch(event)
    session.flush()

    return _build_event_dict(event)


def calculate_event(
        group_id: int,
        event_id: int,
        caller_id: str,
        data: dict,
        session: Session,
) -> tuple[dict, list[dict]]:
    """
    Stores the allocation inputs, runs the core and caches the result.

    Participants are refreshed from the group's current members first, so
    members added since the event was created take part. Payments of
    participants who are no longer members are dropped.

    Args:
        data: CalculateEventSchema output. rounding_mode, currency, category
              and payments keep their stored value when None.

    Returns:
        (event dict, warnings)
    """
    group = require_member(group_id, caller_id, session)
    event = _get_event_or_404(group_id, event_id, session)

    event.participants = [m.to_participant() for m in group.members]
    ids = set(event.participant_ids)

    if data.get("payments") is not None:
        _check_participants(event, data["payments"])
        event.payments = _normalize_payments(data["payments"])
    else:
        event.payments = {
            pid: amount for pid, amount in (event.payments or {}).items() if pid in ids
        }

    event.total = data["total"]
    event.memo = data.get("memo") or ""
    event.extras = [_normalize_amount(x) for x in data.get("extras") or []]
    event.weights = {str(k): _normalize_amount(v) for k, v in (data.get("weights") or {}).items()}
    event.tip_rate = data.get("tip_rate") or 0.0
    if data.get("rounding_mode") is not None:
        event.rounding_mode = data["rounding_mode"]
    if data.get("currency") is not None:
        event.currency = data["currency"]
    if data.get("category") is not None:
        event.category = data["category"]

    result, warnings = _compute(event)
    event.result = {
        "details": result["details"],
        "settlements": result["settlements"],
        "total": result["total_with_tip"],
        "per": result["per"],
    }
    _touch(event)
    session.flush()

    logger.info(
        "Event %s calculated: %d participants, %d transfers",
        event.id, len(result["details"]), len(result["settlements"]),
    )
    return _build_event_dict(event), warnings


def preview_event(
        group_id: int,
        event_id: int,
        caller_id: str,
        session: Session,
) -> tuple[dict, list[dict]]:
    """
    The result the event's stored inputs and current payments produce right
    now, without persisting anything. Payments recorded after the last
    calculate are reflected here.
    """
    require_member(group_id, caller_id, session)
    event = _get_event_or_404(group_id, event_id, session)
    return _compute(event)


def delete_event(group_id: int, event_id: int, caller_id: str, session: Session) -> None:
    require_member(group_id, caller_id, session)
    event = _get_event_or_404(group_id, event_id, session)

    session.delete(event)
    session.flush()
    logger.info("Event %s deleted from group %s", event_id, group_id)


def build_event_export_context(
        group_id: int,
        event_id: int,
        caller_id: str,
        session: Session,
) -> dict:
    """
    Everything the export renderers need, from a live computation over the
    stored inputs and current payments.
    """
    require_member(group_id, caller_id, session)
    event = _get_event_or_404(group_id, event_id, session)

    result, _ = _compute(event)
    return {
        "names": [p["name"] for p in event.participants or []],
        "paid": _paid_vector(event),
        "total": result["total"],
        "tip": result["tip"],
        "tip_rate": event.tip_rate or 0,
        "per": result["per"],
        "details": result["details"],
        "settlements": result["settlements"],
        "memo": event.memo or "",
        "currency": get_currency(event.currency),
        "category": event.category,
    }
