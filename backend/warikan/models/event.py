"""
models/event.py — Event table definition.

An event is one shared expense inside a group: who took part, how much it
cost, how it should be split, who has paid what so far, and the last
calculated result.

Columns and constraints only. No business logic. No imports from services or
routes.

Key design points:
  - `participants` is a COPY of the group's members at creation / calculate
    time. Indices into this list are the participant indices the allocator and
    settlement engine work with.
  - `extras`, `weights`, `payments` and `result` are JSON documents so the
    event round-trips exactly what the client sent and what the engine
    produced, on PostgreSQL and SQLite alike.
  - RoundingMode and Category are Python enums so they can be imported and
    used throughout the service layer without repeating string literals.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.warikan.extensions import db


# ── Enum Definitions ───────────────────────────────────────────────────────
# Defined here so they can be imported by schemas and services without
# pulling in the full model. Do not duplicate these as plain string constants
# anywhere else in the codebase.

class RoundingMode(str, enum.Enum):
    """How a fractional share is turned into a whole currency amount."""
    FLOOR = "floor"
    CEIL  = "ceil"
    ROUND = "round"   # nearest, .5 away from zero


class Category(str, enum.Enum):
    FOOD          = "food"
    TRAVEL        = "travel"
    ENTERTAINMENT = "entertainment"
    SHOPPING      = "shopping"
    TRANSPORT     = "transport"
    OTHER         = "other"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'round'), not names ('ROUND')."""
    return [member.value for member in enum_cls]


# ── Model ──────────────────────────────────────────────────────────────────

class Event(db.Model):
    __tablename__ = "events"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_events_name_nonempty",
        ),
        CheckConstraint(
            "tip_rate >= 0 AND tip_rate <= 1",
            name="ck_events_tip_rate_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # ON DELETE CASCADE: events are owned by their group.
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # [{"id": "<participant_id>", "name": "<display name>"}, ...]
    participants: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Integer currency units. No sign constraint: the allocator splits any total.
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    memo: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")

    rounding_mode: Mapped[RoundingMode] = mapped_column(
        Enum(
            RoundingMode,
            name="rounding_mode_enum",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=RoundingMode.ROUND,
        server_default=RoundingMode.ROUND.value,
    )

    # Fixed per-participant amounts by index; null entries are not fixed.
    extras: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # {"<index>": weight}. JSON object keys are strings; services convert.
    weights: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # {"<participant_id>": amount paid so far}
    payments: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    tip_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="JPY", server_default="JPY")

    category: Mapped[Category] = mapped_column(
        Enum(
            Category,
            name="category_enum",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=Category.OTHER,
        server_default=Category.OTHER.value,
    )

    # Last calculated {details, settlements, total, per}; NULL until calculated.
    result: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="events",
    )

    @property
    def participant_ids(self) -> list[str]:
        """Participant ids in index order."""
        return [p["id"] for p in self.participants or []]

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Event id={self.id} "
            f"group_id={self.group_id} "
            f"total={self.total} "
            f"participants={len(self.participants or [])}>"
        )
