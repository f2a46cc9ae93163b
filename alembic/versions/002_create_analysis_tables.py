"""Create analysis, extraction, action item and notification tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _owner_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("voice_note_id", sa.String(length=36), sa.ForeignKey("voice_notes.id"), nullable=False),
        sa.Column("account_id", sa.String(length=36), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("project_id", sa.String(length=36), sa.ForeignKey("projects.id"), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "ai_analysis",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("voice_note_id", sa.String(length=36), sa.ForeignKey("voice_notes.id"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("intent", sa.String(length=32), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("short_summary", sa.Text(), nullable=False),
        sa.Column("detailed_summary", sa.Text(), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("model", sa.String(length=128), nullable=False),
        sa.Column("prompt_version", sa.Integer(), nullable=True),
        sa.Column("source_transcript", sa.String(length=64), nullable=False),
        sa.Column("raw_response", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("voice_note_id", "version", name="uq_ai_analysis_note_version"),
    )
    op.create_index(op.f("ix_ai_analysis_voice_note_id"), "ai_analysis", ["voice_note_id"])

    op.create_table(
        "material_requests",
        *_owner_columns(),
        sa.Column("material_name", sa.String(length=256), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=True),
        sa.Column("unit", sa.String(length=64), nullable=True),
        sa.Column("urgency", sa.String(length=32), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "labor_requests",
        *_owner_columns(),
        sa.Column("trade", sa.String(length=128), nullable=False),
        sa.Column("headcount", sa.Integer(), nullable=True),
        sa.Column("duration", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "approval_requests",
        *_owner_columns(),
        sa.Column("approval_type", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=True),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "project_events",
        *_owner_columns(),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=True),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    for table in ("material_requests", "labor_requests", "approval_requests", "project_events"):
        op.create_index(op.f(f"ix_{table}_voice_note_id"), table, ["voice_note_id"])

    op.create_table(
        "action_items",
        *_owner_columns(),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("assigned_to", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("needs_review", sa.Boolean(), nullable=False),
        sa.Column("review_status", sa.String(length=32), nullable=True),
        sa.Column("is_critical_flag", sa.Boolean(), nullable=False),
        sa.Column("interaction_history", sa.JSON(), nullable=False),
        sa.Column("ai_analysis", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_action_items_voice_note_id"), "action_items", ["voice_note_id"])
    op.create_index(op.f("ix_action_items_account_id"), "action_items", ["account_id"])
    op.create_index(op.f("ix_action_items_assigned_to"), "action_items", ["assigned_to"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("account_id", sa.String(length=36), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("voice_note_id", sa.String(length=36), sa.ForeignKey("voice_notes.id"), nullable=True),
        sa.Column("action_item_id", sa.String(length=36), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"])
    op.create_index(op.f("ix_notifications_action_item_id"), "notifications", ["action_item_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_notifications_action_item_id"), table_name="notifications")
    op.drop_index(op.f("ix_notifications_user_id"), table_name="notifications")
    op.drop_table("notifications")
    op.drop_index(op.f("ix_action_items_assigned_to"), table_name="action_items")
    op.drop_index(op.f("ix_action_items_account_id"), table_name="action_items")
    op.drop_index(op.f("ix_action_items_voice_note_id"), table_name="action_items")
    op.drop_table("action_items")
    for table in ("project_events", "approval_requests", "labor_requests", "material_requests"):
        op.drop_index(op.f(f"ix_{table}_voice_note_id"), table_name=table)
        op.drop_table(table)
    op.drop_index(op.f("ix_ai_analysis_voice_note_id"), table_name="ai_analysis")
    op.drop_table("ai_analysis")
