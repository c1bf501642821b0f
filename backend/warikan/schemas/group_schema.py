"""
schemas/group_schema.py — Marshmallow schemas for group and member endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim),
    duplicate participant ids inside one payload (DUPLICATE_MEMBER).
  - services/group_service.py:
      - GROUP_NOT_FOUND (requires DB lookup)
      - FORBIDDEN — membership / ownership (requires DB lookup)

IMPORTANT: Inherits from marshmallow.Schema directly — never an extension
           schema class. See extensions.py for the full explanation.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from backend.warikan.errors import ErrorCode


# ── Shared non-empty string validator ─────────────────────────────────────
#
# validate.Length(min=1) alone allows whitespace-only strings like "   "
# because len("   ") == 3 > 0. This validator strips first then checks,
# mirroring the DB CHECK(LENGTH(TRIM(name)) > 0).
# ──────────────────────────────────────────────────────────────────────────

def _validate_non_empty_after_trim(value: str) -> None:
    """Raises ValidationError if the string is blank or contains only whitespace."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _name_field(required: bool = True, **kwargs) -> fields.Str:
    return fields.Str(
        required=required,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
        **kwargs,
    )


class CreateGroupSchema(Schema):
    """
    POST /groups

    name:       group name, non-empty after trim, max 100 chars.
    owner_name: display name the creator appears under in the member list.
                Defaults to the `name` claim of the caller's token.
    """

    name = _name_field()
    owner_name = _name_field(required=False, load_default=None)


class RenameGroupSchema(Schema):
    """PATCH /groups/:id — owner only (checked in the service)."""

    name = _name_field()


class JoinGroupSchema(Schema):
    """
    POST /groups/:id/join

    The caller joins under `name`, or under their token name when omitted.
    """

    name = _name_field(required=False, load_default=None)


class MemberInputSchema(Schema):
    """
    One participant: an opaque id plus a display name.

    `id` may be omitted when adding a named participant who has no account;
    the service generates one.
    """

    id = fields.Str(
        load_default=None,
        validate=[
            validate.Length(min=1, max=128, error="id must be between 1 and 128 characters."),
            _validate_non_empty_after_trim,
        ],
    )
    name = _name_field()


class AddMemberSchema(MemberInputSchema):
    """POST /groups/:id/members — append one participant."""


class ReplaceMembersSchema(Schema):
    """
    PUT /groups/:id/members — full rewrite of the member set (owner only).

    Removing a member is done by sending the set without them.
    """

    members = fields.List(
        fields.Nested(MemberInputSchema),
        required=True,
        validate=validate.Length(min=1, error="A group needs at least one member."),
    )

    @validates_schema
    def validate_unique_ids(self, data: dict, **kwargs) -> None:
        """DUPLICATE_MEMBER (400): the same id appears more than once."""
        ids = [m["id"] for m in data.get("members", []) if m.get("id") is not None]
        if len(ids) != len(set(ids)):
            raise ValidationError({"members": [ErrorCode.DUPLICATE_MEMBER]})
