"""
routes/groups.py — Group and member route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (url_prefix=/api/v1/groups):
  POST   /groups                  → 201  create group (caller = owner)
  GET    /groups                  → 200  list caller's groups
  GET    /groups/:id              → 200  group + members (member)
  PATCH  /groups/:id              → 200  rename (owner)
  DELETE /groups/:id              → 200  delete with events (owner)
  POST   /groups/:id/join         → 200  join as the caller
  POST   /groups/:id/members      → 201  append a participant (member)
  PUT    /groups/:id/members      → 200  rewrite member set (owner)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.warikan.extensions import db
from backend.warikan.middleware.auth_middleware import require_auth
from backend.warikan.schemas.group_schema import (
    AddMemberSchema,
    CreateGroupSchema,
    JoinGroupSchema,
    RenameGroupSchema,
    ReplaceMembersSchema,
)
from backend.warikan.services import group_service

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/", methods=["POST"])
@require_auth
def create_group():
    """POST /groups — Create a group. Caller becomes owner and first member."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.create_group(
        name=data["name"],
        owner_id=g.user_id,
        owner_name=data["owner_name"] or g.user_name,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/", methods=["GET"])
@require_auth
def list_groups():
    """GET /groups — Groups the caller belongs to."""
    result = group_service.list_groups(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["GET"])
@require_auth
def get_group(group_id: int):
    result = group_service.get_group(
        group_id=group_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["PATCH"])
@require_auth
def rename_group(group_id: int):
    data = RenameGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.rename_group(
        group_id=group_id,
        caller_id=g.user_id,
        name=data["name"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["DELETE"])
@require_auth
def delete_group(group_id: int):
    """DELETE /groups/:id — Owner only. Events go with the group."""
    group_service.delete_group(
        group_id=group_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "group_id": group_id},
        "warnings": [],
    }), 200


@groups_bp.route("/<int:group_id>/join", methods=["POST"])
@require_auth
def join_group(group_id: int):
    """POST /groups/:id/join — Join via a shared group link."""
    data = JoinGroupSchema().load(request.get_json(silent=True) or {})
    result = group_service.join_group(
        group_id=group_id,
        user_id=g.user_id,
        user_name=data["name"] or g.user_name,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/members", methods=["POST"])
@require_auth
def add_member(group_id: int):
    """POST /groups/:id/members — Append a participant. Existing ids are left as is."""
    data = AddMemberSchema().load(request.get_json(force=True) or {})
    result = group_service.add_member(
        group_id=group_id,
        caller_id=g.user_id,
        participant_id=data["id"],
        name=data["name"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int:group_id>/members", methods=["PUT"])
@require_auth
def replace_members(group_id: int):
    """PUT /groups/:id/members — Rewrite the member set. Owner only."""
    data = ReplaceMembersSchema().load(request.get_json(force=True) or {})
    result = group_service.replace_members(
        group_id=group_id,
        caller_id=g.user_id,
        members=data["members"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
