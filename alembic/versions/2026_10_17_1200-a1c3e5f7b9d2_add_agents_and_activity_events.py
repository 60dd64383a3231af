"""Add agents and activity_events tables

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "a1c3e5f7b9d2"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "agents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("external_user_id", sa.String(64), nullable=True),
        sa.Column("external_username", sa.String(256), nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("default_shift", sa.String(16), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_agents_email", "agents", ["email"], unique=True)
    op.create_index("ix_agents_external_user_id", "agents", ["external_user_id"])
    op.create_index("ix_agents_is_active", "agents", ["is_active"])

    op.create_table(
        "activity_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agent_id", sa.Uuid(), nullable=False),
        sa.Column("agent_external_id", sa.String(64), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("channel_id", sa.String(64), nullable=False),
        sa.Column("thread_key", sa.String(64), nullable=True),
        sa.Column("parent_message_key", sa.String(64), nullable=True),
        sa.Column("message_key", sa.String(64), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("matched_reply_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("matched_reply_key", sa.String(64), nullable=True),
        sa.Column("response_time_seconds", sa.Integer(), nullable=True),
        sa.Column("message_preview", sa.String(200), nullable=True),
        sa.Column("shift", sa.String(16), nullable=False),
        sa.Column("activity_date", sa.String(10), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(["agent_id"], ["agents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_activity_events_ticket_taken",
        "activity_events",
        ["agent_external_id", "parent_message_key"],
        unique=True,
        postgresql_where=sa.text("kind = 'ticket_taken'"),
    )
    op.create_index(
        "uq_activity_events_message_key",
        "activity_events",
        ["agent_external_id", "message_key"],
        unique=True,
        postgresql_where=sa.text("message_key IS NOT NULL"),
    )
    op.create_index(
        "ix_activity_events_open_tickets",
        "activity_events",
        [
            "agent_external_id",
            "thread_key",
            "kind",
            "matched_reply_at",
            "occurred_at",
        ],
    )
    op.create_index(
        "ix_activity_events_agent_date",
        "activity_events",
        ["agent_id", "activity_date"],
    )
    op.create_index(
        "ix_activity_events_date_shift",
        "activity_events",
        ["activity_date", "shift"],
    )
    op.create_index(
        "ix_activity_events_agent_id", "activity_events", ["agent_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_activity_events_agent_id", table_name="activity_events")
    op.drop_index("ix_activity_events_date_shift", table_name="activity_events")
    op.drop_index("ix_activity_events_agent_date", table_name="activity_events")
    op.drop_index("ix_activity_events_open_tickets", table_name="activity_events")
    op.drop_index("uq_activity_events_message_key", table_name="activity_events")
    op.drop_index("uq_activity_events_ticket_taken", table_name="activity_events")
    op.drop_table("activity_events")
    op.drop_index("ix_agents_is_active", table_name="agents")
    op.drop_index("ix_agents_external_user_id", table_name="agents")
    op.drop_index("ix_agents_email", table_name="agents")
    op.drop_table("agents")
