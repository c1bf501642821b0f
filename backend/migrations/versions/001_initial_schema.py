"""Initial schema — groups, members, events.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  groups → members → events (FK dependency order), then indexes.

Enums (rounding_mode, category) are stored as VARCHAR with CHECK
constraints (SQLAlchemy Enum(native_enum=False)), so no database enum types
are created and the schema runs unchanged on PostgreSQL and SQLite.

ON DELETE policies:
  members.group_id  → CASCADE   (members owned by group)
  events.group_id   → CASCADE   (events owned by group)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration, no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── Step 1: groups ─────────────────────────────────────────────────────
    # owner_id is the opaque `sub` of the external identity token.

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
    )

    # ── Step 2: members ────────────────────────────────────────────────────
    # UNIQUE(group_id, participant_id): a participant appears once per group.

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_members_group"),
            nullable=False,
        ),
        sa.Column("participant_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_members"),
        sa.UniqueConstraint("group_id", "participant_id", name="uq_members_group_participant"),
    )

    # ── Step 3: events ─────────────────────────────────────────────────────
    # participants / extras / weights / payments / result are JSON documents.

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_events_group"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("participants", sa.JSON(), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("memo", sa.String(255), nullable=False, server_default=""),
        sa.Column(
            "rounding_mode",
            sa.Enum(
                "floor", "ceil", "round",
                name="rounding_mode_enum",
                native_enum=False,
                length=16,
                create_constraint=True,
            ),
            nullable=False,
            server_default="round",
        ),
        sa.Column("extras", sa.JSON(), nullable=False),
        sa.Column("weights", sa.JSON(), nullable=False),
        sa.Column("payments", sa.JSON(), nullable=False),
        sa.Column("tip_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="JPY"),
        sa.Column(
            "category",
            sa.Enum(
                "food", "travel", "entertainment", "shopping", "transport", "other",
                name="category_enum",
                native_enum=False,
                length=16,
                create_constraint=True,
            ),
            nullable=False,
            server_default="other",
        ),
        sa.Column("result", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_events"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_events_name_nonempty",
        ),
        sa.CheckConstraint(
            "tip_rate >= 0 AND tip_rate <= 1",
            name="ck_events_tip_rate_range",
        ),
    )

    # ── Step 4: indexes ────────────────────────────────────────────────────

    op.create_index("idx_groups_owner", "groups", ["owner_id"])
    op.create_index("idx_members_group", "members", ["group_id"])
    op.create_index("idx_members_participant", "members", ["participant_id"])
    # Event lists are read newest first per group.
    op.create_index("idx_events_group_created", "events", ["group_id", "created_at"])


def downgrade() -> None:
    """Drops everything created in upgrade(), in reverse dependency order."""
    op.drop_index("idx_events_group_created", table_name="events")
    op.drop_index("idx_members_participant",  table_name="members")
    op.drop_index("idx_members_group",        table_name="members")
    op.drop_index("idx_groups_owner",         table_name="groups")

    op.drop_table("events")
    op.drop_table("members")
    op.drop_table("groups")
