"""
routes/exports.py — Share text, CSV and payment QR payloads for an event.

All exports render a live computation over the event's stored inputs and
current payments (see event_service.build_event_export_context).

Endpoints (url_prefix=/api/v1/groups):
  GET  /groups/:id/events/:eid/export/text     → 200  {text, line_url}
  GET  /groups/:id/events/:eid/export/csv      → 200  text/csv attachment
  POST /groups/:id/events/:eid/export/payment  → 200  QR payload for one transfer
"""

from __future__ import annotations

from flask import Blueprint, Response, g, jsonify, request

from backend.warikan.errors import AppError, ErrorCode
from backend.warikan.extensions import db
from backend.warikan.middleware.auth_middleware import require_auth
from backend.warikan.schemas.event_schema import PaymentPayloadSchema
from backend.warikan.services import event_service, export_service

exports_bp = Blueprint("exports", __name__)


def _context(group_id: int, event_id: int) -> dict:
    return event_service.build_event_export_context(
        group_id=group_id,
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )


@exports_bp.route("/<int:group_id>/events/<int:event_id>/export/text", methods=["GET"])
@require_auth
def export_text(group_id: int, event_id: int):
    text = export_service.render_share_text(_context(group_id, event_id))
    return jsonify({
        "data": {
            "text": text,
            "line_url": export_service.build_share_link(text),
        },
        "warnings": [],
    }), 200


@exports_bp.route("/<int:group_id>/events/<int:event_id>/export/csv", methods=["GET"])
@require_auth
def export_csv(group_id: int, event_id: int):
    body = export_service.render_csv(_context(group_id, event_id))
    return Response(
        body,
        status=200,
        mimetype="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export_service.CSV_FILENAME}"',
        },
    )


@exports_bp.route("/<int:group_id>/events/<int:event_id>/export/payment", methods=["POST"])
@require_auth
def export_payment(group_id: int, event_id: int):
    """
    POST /groups/:id/events/:eid/export/payment

    Body: {"transfer_index": int, "method": str}
    The recipient is the transfer's receiving participant.
    """
    data = PaymentPayloadSchema().load(request.get_json(force=True) or {})
    ctx = _context(group_id, event_id)

    index = data["transfer_index"]
    if index >= len(ctx["settlements"]):
        raise AppError(
            ErrorCode.INVALID_FIELD,
            f"transfer_index {index} is out of range; the event has "
            f"{len(ctx['settlements'])} transfers.",
            422,
            field="transfer_index",
        )

    transfer = ctx["settlements"][index]
    payload = export_service.build_payment_payload(
        method=data["method"],
        amount=transfer["amount"],
        recipient=ctx["names"][transfer["to"]],
        currency=ctx["currency"],
        memo=ctx["memo"],
    )
    return jsonify({
        "data": {"transfer": transfer, "payload": payload},
        "warnings": [],
    }), 200
