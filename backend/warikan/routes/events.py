"""
routes/events.py — Event route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Endpoints (url_prefix=/api/v1/groups):
  POST   /groups/:id/events                   → 201  create event
  GET    /groups/:id/events                   → 200  list, newest first
  GET    /groups/:id/events/:eid              → 200  event + live preview
  PUT    /groups/:id/events/:eid/payments     → 200  replace payments
  POST   /groups/:id/events/:eid/calculate    → 200  allocate, settle, cache
  DELETE /groups/:id/events/:eid              → 200  delete event
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.warikan.extensions import db
from backend.warikan.middleware.auth_middleware import require_auth
from backend.warikan.schemas.event_schema import (
    CalculateEventSchema,
    CreateEventSchema,
    UpdatePaymentsSchema,
)
from backend.warikan.services import event_service

events_bp = Blueprint("events", __name__)


@events_bp.route("/<int:group_id>/events", methods=["POST"])
@require_auth
def create_event(group_id: int):
    """POST /groups/:id/events — Participants are the group's current members."""
    data = CreateEventSchema().load(request.get_json(force=True) or {})
    result = event_service.create_event(
        group_id=group_id,
        caller_id=g.user_id,
        name=data["name"],
        session=db.session,
        default_currency=current_app.config["DEFAULT_CURRENCY"],
        default_rounding=current_app.config["DEFAULT_ROUNDING_MODE"],
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@events_bp.route("/<int:group_id>/events", methods=["GET"])
@require_auth
def list_events(group_id: int):
    result = event_service.list_events(
        group_id=group_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@events_bp.route("/<int:group_id>/events/<int:event_id>", methods=["GET"])
@require_auth
def get_event(group_id: int, event_id: int):
    """
    GET /groups/:id/events/:eid

    `preview` is computed from the stored inputs and the current payments, so
    it reflects payments recorded after the last calculate. `result` is the
    cached output of that calculate.
    """
    result = event_service.get_event(
        group_id=group_id,
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    preview, warnings = event_service.preview_event(
        group_id=group_id,
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    result["preview"] = preview
    return jsonify({"data": result, "warnings": warnings}), 200


@events_bp.route("/<int:group_id>/events/<int:event_id>/payments", methods=["PUT"])
@require_auth
def update_payments(group_id: int, event_id: int):
    data = UpdatePaymentsSchema().load(request.get_json(force=True) or {})
    result = event_service.update_payments(
        group_id=group_id,
        event_id=event_id,
        caller_id=g.user_id,
        payments=data["payments"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@events_bp.route("/<int:group_id>/events/<int:event_id>/calculate", methods=["POST"])
@require_auth
def calculate_event(group_id: int, event_id: int):
    """
    POST /groups/:id/events/:eid/calculate

    Imbalanced results are still stored; they come back with SUM_MISMATCH or
    UNBALANCED_PAYMENTS in `warnings`.
    """
    data = CalculateEventSchema().load(request.get_json(force=True) or {})
    result, warnings = event_service.calculate_event(
        group_id=group_id,
        event_id=event_id,
        caller_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": warnings}), 200


@events_bp.route("/<int:group_id>/events/<int:event_id>", methods=["DELETE"])
@require_auth
def delete_event(group_id: int, event_id: int):
    event_service.delete_event(
        group_id=group_id,
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "event_id": event_id},
        "warnings": [],
    }), 200
