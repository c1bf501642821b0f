"""
models/member.py — Group member (participant) table definition.

No business logic. No imports from services or routes.

A member is a participant identity inside one group: an opaque id plus a
display name. The id is either the `sub` of an authenticated user who joined,
or a generated id for a named participant added by someone else.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.warikan.extensions import db


class Member(db.Model):
    __tablename__ = "members"

    __table_args__ = (
        # A participant can only appear once per group.
        UniqueConstraint("group_id", "participant_id", name="uq_members_group_participant"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # ON DELETE CASCADE: members are owned by their group.
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    participant_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="members",
    )

    def to_participant(self) -> dict:
        """The {id, name} shape stored in Event.participants."""
        return {"id": self.participant_id, "name": self.name}

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Member id={self.id} "
            f"group_id={self.group_id} "
            f"participant_id={self.participant_id!r}>"
        )
