"""Draft model for Clinidraft.

Defines the ai_drafts table holding one generation outcome per
(intake, artifact type). Rows are upserted on every generation attempt and
bulk-deleted before a forced regeneration; they are otherwise never
mutated, so the table doubles as the audit trail of what the model produced.
"""

from __future__ import annotations

import enum
import uuid
from typing import Any

from sqlalchemy import Enum, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from clinidraft.database.models.base import Base, JSONType, TimestampMixin


class ArtifactType(str, enum.Enum):
    """Document types produced for each intake.

    Members:
        clinical_note: Draft clinical note for the consulting doctor.
        med_cert: Draft medical certificate.
    """

    clinical_note = "clinical_note"
    med_cert = "med_cert"


class DraftStatus(str, enum.Enum):
    """Outcome of a generation attempt.

    States:
        ready: Output parsed and passed ground-truth validation.
        failed: Parse failure, ground-truth failure or unexpected error.
    """

    ready = "ready"
    failed = "failed"


class Draft(TimestampMixin, Base):
    """A machine-authored candidate document pending doctor review.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        intake_id: Intake the draft was generated from.
        artifact_type: Which document this row holds.
        status: ready or failed.
        content: Parsed model output; ``{"raw": text}`` when the output
            could not be parsed; ``{}`` after an unexpected failure.
        error: Human-readable failure reason.
        validation_errors: Schema violations from the output parser.
        ground_truth_errors: Mismatches against the intake answers.
        prompt_tokens: Prompt token usage reported by the model, if any.
        completion_tokens: Completion token usage reported by the model, if any.
        generation_duration_ms: Wall time of the model call.
        model: Model identifier that produced the content.
    """

    __tablename__ = "ai_drafts"

    intake_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("intakes.id", ondelete="CASCADE"),
        nullable=False,
    )
    artifact_type: Mapped[ArtifactType] = mapped_column(
        Enum(ArtifactType, name="artifact_type"),
        nullable=False,
    )
    status: Mapped[DraftStatus] = mapped_column(
        Enum(DraftStatus, name="draft_status"),
        nullable=False,
    )
    content: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    validation_errors: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
    ground_truth_errors: Mapped[list[str] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
    prompt_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completion_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    generation_duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    model: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("intake_id", "artifact_type", name="uq_ai_drafts_intake_artifact"),
        Index("idx_ai_drafts_status", "status"),
    )
