"""Create account, user, project, prompt and voice note tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("transcription_provider", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("account_id", sa.String(length=36), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("email", sa.String(length=256), nullable=False),
        sa.Column("full_name", sa.String(length=256), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("preferred_language", sa.String(length=8), nullable=False),
        sa.Column("reports_to_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_account_id"), "users", ["account_id"])
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("account_id", sa.String(length=36), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("location", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_projects_account_id"), "projects", ["account_id"])
    op.create_table(
        "prompts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("purpose", sa.String(length=32), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("template", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider", "purpose", "version", name="uq_prompts_provider_purpose_version"),
    )
    op.create_index(op.f("ix_prompts_provider"), "prompts", ["provider"])
    op.create_table(
        "voice_notes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("account_id", sa.String(length=36), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("project_id", sa.String(length=36), sa.ForeignKey("projects.id"), nullable=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("audio_url", sa.String(length=1024), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="received"),
        sa.Column("transcript_raw_original", sa.Text(), nullable=True),
        sa.Column("transcript_raw_current", sa.Text(), nullable=True),
        sa.Column("transcript_en_original", sa.Text(), nullable=True),
        sa.Column("transcript_en_current", sa.Text(), nullable=True),
        sa.Column("transcript_final", sa.Text(), nullable=True),
        sa.Column("detected_language_code", sa.String(length=16), nullable=True),
        sa.Column("asr_confidence", sa.Float(), nullable=True),
        sa.Column("transcription", sa.Text(), nullable=True),
        sa.Column("translated_transcription", sa.JSON(), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=True),
        sa.Column("priority", sa.String(length=16), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_voice_notes_account_id"), "voice_notes", ["account_id"])
    op.create_index(op.f("ix_voice_notes_project_id"), "voice_notes", ["project_id"])
    op.create_index(op.f("ix_voice_notes_user_id"), "voice_notes", ["user_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_voice_notes_user_id"), table_name="voice_notes")
    op.drop_index(op.f("ix_voice_notes_project_id"), table_name="voice_notes")
    op.drop_index(op.f("ix_voice_notes_account_id"), table_name="voice_notes")
    op.drop_table("voice_notes")
    op.drop_index(op.f("ix_prompts_provider"), table_name="prompts")
    op.drop_table("prompts")
    op.drop_index(op.f("ix_projects_account_id"), table_name="projects")
    op.drop_table("projects")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_index(op.f("ix_users_account_id"), table_name="users")
    op.drop_table("users")
    op.drop_table("accounts")
