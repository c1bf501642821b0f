"""
services/group_service.py — Group and member business logic.

Authorization rules:
  - Reading a group, adding a participant:     any member
  - Joining:                                   any authenticated caller who
                                               knows the group id (share link)
  - Renaming, deleting, rewriting the members: group owner only

Non-members receive FORBIDDEN (403), not GROUP_NOT_FOUND, once the group is
known to exist.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.warikan.errors import AppError, ErrorCode
from backend.warikan.models.group import Group
from backend.warikan.models.member import Member

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_group_or_404(group_id: int, session: Session) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = session.get(Group, group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
            404,
        )
    return group


def _find_member(group_id: int, participant_id: str, session: Session) -> Member | None:
    return session.execute(
        select(Member).where(
            Member.group_id == group_id,
            Member.participant_id == participant_id,
        )
    ).scalar_one_or_none()


def require_member(group_id: int, user_id: str, session: Session) -> Group:
    """
    Returns the group if user_id is one of its members.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)
    """
    group = _get_group_or_404(group_id, session)
    if _find_member(group_id, user_id, session) is None:
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not a member of group {group_id}.",
            403,
        )
    return group


def _require_owner(group: Group, user_id: str, action: str) -> None:
    if group.owner_id != user_id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"Only the group owner may {action}.",
            403,
        )


def _build_group_dict(group: Group) -> dict:
    return {
        "id": group.id,
        "name": group.name,
        "owner_id": group.owner_id,
        "created_at": group.created_at.isoformat() if group.created_at else None,
        "members": [m.to_participant() for m in group.members],
    }


# ── Public service functions ───────────────────────────────────────────────

def create_group(name: str, owner_id: str, owner_name: str, session: Session) -> dict:
    """
    Creates a group. The creator becomes the owner and its first member.

    Args:
        name:       Group name (validated by schema).
        owner_id:   Caller identity (flask.g.user_id).
        owner_name: Display name the owner appears under.
    """
    group = Group(name=name.strip(), owner_id=owner_id)
    group.members.append(Member(participant_id=owner_id, name=owner_name.strip()))
    session.add(group)
    session.flush()

    logger.info("Group %s created by %s", group.id, owner_id)
    return _build_group_dict(group)


def list_groups(user_id: str, session: Session) -> list[dict]:
    """Groups the caller is a member of, oldest first. No member lists."""
    stmt = (
        select(Group)
        .join(Member, Group.id == Member.group_id)
        .where(Member.participant_id == user_id)
        .order_by(Group.created_at.asc(), Group.id.asc())
    )
    groups = session.execute(stmt).scalars().all()

    return [
        {
            "id": g.id,
            "name": g.name,
            "owner_id": g.owner_id,
            "created_at": g.created_at.isoformat() if g.created_at else None,
        }
        for g in groups
    ]


def get_group(group_id: int, caller_id: str, session: Session) -> dict:
    """Full group details including the member list. Caller must be a member."""
    group = require_member(group_id, caller_id, session)
    return _build_group_dict(group)


def join_group(group_id: int, user_id: str, user_name: str, session: Session) -> dict:
    """
    Adds the caller to the group under user_name.

    Idempotent: joining a group one already belongs to changes nothing.
    """
    group = _get_group_or_404(group_id, session)

    if _find_member(group_id, user_id, session) is None:
        group.members.append(Member(participant_id=user_id, name=user_name.strip()))
        session.flush()
        logger.info("%s joined group %s", user_id, group_id)

    return _build_group_dict(group)


def add_member(
        group_id: int,
        caller_id: str,
        participant_id: str | None,
        name: str,
        session: Session,
) -> dict:
    """
    Appends a participant to the group.

    A missing participant_id is generated, for named participants who have
    no account. An id that is already a member is left unchanged.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403) -- caller is not a member
    """
    group = require_member(group_id, caller_id, session)

    participant_id = participant_id or uuid.uuid4().hex
    if _find_member(group_id, participant_id, session) is None:
        group.members.append(Member(participant_id=participant_id, name=name.strip()))
        session.flush()

    return _build_group_dict(group)


def replace_members(
        group_id: int,
        caller_id: str,
        members: list[dict],
        session: Session,
) -> dict:
    """
    Rewrites the whole member set. Owner only.

    Members kept by id keep their row (and joined_at); their name is updated.
    Entries without an id get a generated one.
    """
    group = _get_group_or_404(group_id, session)
    _require_owner(group, caller_id, "change the member list")

    existing = {m.participant_id: m for m in group.members}
    kept: list[Member] = []
    for entry in members:
        pid = entry.get("id") or uuid.uuid4().hex
        member = existing.get(pid)
        if member is None:
            member = Member(participant_id=pid, name=entry["name"].strip())
        else:
            member.name = entry["name"].strip()
        kept.append(member)

    # delete-orphan removes rows that are no longer in the collection.
    group.members = kept
    session.flush()

    logger.info("Group %s members replaced (%d members)", group_id, len(kept))
    return _build_group_dict(group)


def rename_group(group_id: int, caller_id: str, name: str, session: Session) -> dict:
    """Owner only."""
    group = _get_group_or_404(group_id, session)
    _require_owner(group, caller_id, "rename the group")

    group.name = name.strip()
    session.flush()
    return _build_group_dict(group)


def delete_group(group_id: int, caller_id: str, session: Session) -> None:
    """Owner only. Members and events are deleted with the group."""
    group = _get_group_or_404(group_id, session)
    _require_owner(group, caller_id, "delete the group")

    session.delete(group)
    session.flush()
    logger.info("Group %s deleted by %s", group_id, caller_id)
