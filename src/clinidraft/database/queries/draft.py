"""Draft query functions for Clinidraft.

Writes go through a single ``INSERT ... ON CONFLICT DO UPDATE`` keyed on
(intake_id, artifact_type), so concurrent writers can never produce a
second row for the same artifact.
"""

from __future__ import annotations

import uuid
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from clinidraft.database.models.draft import ArtifactType, Draft, DraftStatus

logger = structlog.get_logger(__name__)


def _insert_for(session: AsyncSession) -> Any:
    """Pick the dialect-specific insert construct that supports ON CONFLICT."""
    dialect = session.bind.dialect.name if session.bind is not None else "postgresql"
    if dialect == "sqlite":
        return sqlite_insert
    if dialect == "postgresql":
        return pg_insert
    raise NotImplementedError(f"Draft upsert is not supported on dialect {dialect!r}")


async def upsert_draft(
    session: AsyncSession,
    intake_id: UUID,
    artifact_type: ArtifactType,
    status: DraftStatus,
    content: dict[str, Any],
    error: str | None = None,
    validation_errors: list[dict[str, Any]] | None = None,
    ground_truth_errors: list[str] | None = None,
    prompt_tokens: int | None = None,
    completion_tokens: int | None = None,
    generation_duration_ms: int | None = None,
    model: str | None = None,
) -> None:
    """Insert or overwrite the draft for (intake_id, artifact_type).

    Every column except the key is replaced, so a retry never inherits
    stale errors or usage counters from the previous attempt.

    Args:
        session: Active async database session (not yet in a transaction).
        intake_id: Intake the draft belongs to.
        artifact_type: Artifact stored in this row.
        status: ready or failed.
        content: Structured content, raw text wrapper, or empty dict.
        error: Failure reason, if any.
        validation_errors: Schema violations, if any.
        ground_truth_errors: Ground-truth mismatches, if any.
        prompt_tokens: Prompt token usage.
        completion_tokens: Completion token usage.
        generation_duration_ms: Model call duration in milliseconds.
        model: Model identifier.
    """
    values: dict[str, Any] = {
        "status": status,
        "content": content,
        "error": error,
        "validation_errors": validation_errors,
        "ground_truth_errors": ground_truth_errors,
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "generation_duration_ms": generation_duration_ms,
        "model": model,
    }

    insert = _insert_for(session)
    stmt = insert(Draft).values(
        id=uuid.uuid4(),
        intake_id=intake_id,
        artifact_type=artifact_type,
        **values,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["intake_id", "artifact_type"],
        set_={**values, "updated_at": func.now()},
    )

    async with session.begin():
        await session.execute(stmt)

    logger.info(
        "draft_upserted",
        intake_id=str(intake_id),
        artifact_type=artifact_type.value,
        status=status.value,
    )


async def list_drafts(
    session: AsyncSession,
    intake_id: UUID,
) -> list[Draft]:
    """List all drafts for an intake, ordered by artifact type."""
    stmt = (
        select(Draft)
        .where(Draft.intake_id == intake_id)
        .order_by(Draft.artifact_type.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_artifact_types(
    session: AsyncSession,
    intake_id: UUID,
) -> int:
    """Count the distinct artifact types stored for an intake."""
    stmt = select(func.count(func.distinct(Draft.artifact_type))).where(
        Draft.intake_id == intake_id
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def delete_drafts(
    session: AsyncSession,
    intake_id: UUID,
) -> int:
    """Delete every draft of an intake in one statement.

    A single DELETE inside one transaction means readers observe either
    both artifacts or neither.

    Returns:
        Number of rows deleted.
    """
    stmt = delete(Draft).where(Draft.intake_id == intake_id)

    async with session.begin():
        result = await session.execute(stmt)

    deleted = result.rowcount or 0
    logger.info("drafts_deleted", intake_id=str(intake_id), deleted=deleted)
    return deleted
