"""Initial schema: users, events, event_volunteers, counters.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("uid", sa.String(128), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("photo_url", sa.String(1024), nullable=False, server_default=""),
        sa.Column("auth_provider", sa.String(50), nullable=False, server_default="email"),
        sa.Column("phone", sa.String(50), nullable=False, server_default=""),
        sa.Column("location", sa.String(255), nullable=False, server_default=""),
        sa.Column("my_events", sa.JSON(), nullable=False),
        sa.Column("joined_events", sa.JSON(), nullable=False),
        sa.Column("total_events_created", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_events_joined", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("total_events_created >= 0", name="check_events_created_non_negative"),
        sa.CheckConstraint("total_events_joined >= 0", name="check_events_joined_non_negative"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    # UNIQUE uid: concurrent first logins for the same identity collide here
    # instead of producing two profiles.
    op.create_index("ix_users_uid", "users", ["uid"], unique=True)
    op.create_index("ix_users_user_id", "users", ["user_id"], unique=True)

    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.String(32), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("organization", sa.String(255), nullable=False, server_default=""),
        sa.Column("organizer", sa.String(255), nullable=False, server_default=""),
        sa.Column("date", sa.String(64), nullable=False),
        sa.Column("time", sa.String(64), nullable=False, server_default=""),
        sa.Column("end_time", sa.String(64), nullable=False, server_default=""),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("coordinates", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(100), nullable=False, server_default="general"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("full_description", sa.Text(), nullable=False, server_default=""),
        sa.Column("requirements", sa.JSON(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("contact", sa.JSON(), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("reviews", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("impact", sa.JSON(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("recurrence", sa.String(100), nullable=False, server_default=""),
        sa.Column("volunteers", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("max_volunteers", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("live_attendance", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("visibility", sa.String(20), nullable=False, server_default="public"),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("owner_email", sa.String(255), nullable=False, server_default=""),
        sa.Column("owner_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("volunteers >= 0", name="check_volunteers_non_negative"),
        sa.CheckConstraint("max_volunteers >= 0", name="check_max_volunteers_non_negative"),
        sa.CheckConstraint("visibility IN ('public', 'private')", name="check_event_visibility"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_event_id", "events", ["event_id"], unique=True)
    op.create_index("ix_events_owner_id", "events", ["owner_id"])
    # Every listing is ORDER BY created_at DESC, the public one filtered on
    # visibility first.
    op.create_index("ix_events_visibility_created", "events", ["visibility", "created_at"])

    # Roster table
    op.create_table(
        "event_volunteers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_pk", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False, server_default=""),
        sa.Column("user_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("points_awarded", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_pk", "user_id", name="uq_event_volunteer"),
    )
    op.create_index("ix_event_volunteers_id", "event_volunteers", ["id"])
    op.create_index("ix_event_volunteers_event_pk", "event_volunteers", ["event_pk"])
    op.create_index("ix_event_volunteers_user_id", "event_volunteers", ["user_id"])

    # Sequences for USR###/EVT### ids, seeded so the first increment yields 1
    counters = op.create_table(
        "counters",
        sa.Column("name", sa.String(50), primary_key=True),
        sa.Column("value", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.bulk_insert(counters, [{"name": "users", "value": 0}, {"name": "events", "value": 0}])


def downgrade() -> None:
    op.drop_table("counters")
    op.drop_table("event_volunteers")
    op.drop_table("events")
    op.drop_table("users")
