"""AI drafts table.

Creates ai_drafts with its artifact_type and draft_status enums and the
(intake_id, artifact_type) unique constraint that draft upserts target.
The intakes table already exists (owned by the patient-facing app).

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    artifact_type = postgresql.ENUM("clinical_note", "med_cert", name="artifact_type")
    draft_status = postgresql.ENUM("ready", "failed", name="draft_status")
    artifact_type.create(op.get_bind(), checkfirst=True)
    draft_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "ai_drafts",
        sa.Column(
            "id",
            sa.Uuid(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column(
            "intake_id",
            sa.Uuid(),
            sa.ForeignKey("intakes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "artifact_type",
            postgresql.ENUM(name="artifact_type", create_type=False),
            nullable=False,
        ),
        sa.Column(
            "status",
            postgresql.ENUM(name="draft_status", create_type=False),
            nullable=False,
        ),
        sa.Column(
            "content",
            postgresql.JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("validation_errors", postgresql.JSONB(), nullable=True),
        sa.Column("ground_truth_errors", postgresql.JSONB(), nullable=True),
        sa.Column("prompt_tokens", sa.Integer(), nullable=True),
        sa.Column("completion_tokens", sa.Integer(), nullable=True),
        sa.Column("generation_duration_ms", sa.Integer(), nullable=True),
        sa.Column("model", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "intake_id", "artifact_type", name="uq_ai_drafts_intake_artifact"
        ),
    )
    op.create_index("idx_ai_drafts_status", "ai_drafts", ["status"])


def downgrade() -> None:
    op.drop_index("idx_ai_drafts_status", table_name="ai_drafts")
    op.drop_table("ai_drafts")
    sa.Enum(name="draft_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="artifact_type").drop(op.get_bind(), checkfirst=True)
