"""Record store capability for draft generation.

The orchestrator never reaches for a global database client. It receives a
``DraftStore`` handle exposing exactly the verbs generation needs, which
lets tests substitute an in-memory fake and keeps privileged database
access explicit at the call site.

``SqlDraftStore`` is the production implementation over an
``async_sessionmaker``; each verb runs in its own short session.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

import structlog
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from clinidraft.database.models.draft import ArtifactType, Draft, DraftStatus
from clinidraft.database.queries.draft import (
    count_artifact_types,
    delete_drafts,
    list_drafts,
    upsert_draft,
)
from clinidraft.database.queries.intake import get_intake

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[], AsyncSession]


class PatientRecord(BaseModel):
    """Patient fields available to generation."""

    patient_id: str | None = None
    full_name: str
    date_of_birth: date | None = None


class IntakeRecord(BaseModel):
    """An intake as loaded for generation.

    Attributes:
        intake_id: Intake identifier.
        service_type: Raw service type discriminator (may be None).
        patient: Requesting patient, if the profile exists.
        answers: Questionnaire answers; an unordered field map.
        created_at: When the request was made.
    """

    intake_id: str
    service_type: str | None = None
    patient: PatientRecord | None = None
    answers: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class DraftRecord(BaseModel):
    """One generation outcome for one (intake, artifact type)."""

    intake_id: str
    artifact_type: ArtifactType
    status: DraftStatus
    content: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    validation_errors: list[dict[str, Any]] | None = None
    ground_truth_errors: list[str] | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    generation_duration_ms: int | None = None
    model: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@runtime_checkable
class DraftStore(Protocol):
    """Verbs the generation pipeline may use against the record store."""

    async def read_intake(self, intake_id: str) -> IntakeRecord | None:
        """Load an intake, or None if it does not exist."""
        ...

    async def upsert_draft(self, record: DraftRecord) -> None:
        """Insert or overwrite the draft keyed by (intake_id, artifact_type)."""
        ...

    async def drafts_exist(self, intake_id: str) -> bool:
        """True only if a draft exists for every artifact type."""
        ...

    async def delete_drafts(self, intake_id: str) -> None:
        """Delete all drafts of an intake atomically."""
        ...

    async def get_drafts(self, intake_id: str) -> list[DraftRecord]:
        """Return stored drafts of an intake."""
        ...


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _to_record(draft: Draft) -> DraftRecord:
    return DraftRecord(
        intake_id=str(draft.intake_id),
        artifact_type=draft.artifact_type,
        status=draft.status,
        content=draft.content or {},
        error=draft.error,
        validation_errors=draft.validation_errors,
        ground_truth_errors=draft.ground_truth_errors,
        prompt_tokens=draft.prompt_tokens,
        completion_tokens=draft.completion_tokens,
        generation_duration_ms=draft.generation_duration_ms,
        model=draft.model,
        created_at=draft.created_at,
        updated_at=draft.updated_at,
    )


class SqlDraftStore:
    """DraftStore backed by SQLAlchemy async sessions.

    Intake identifiers that are not valid UUIDs cannot exist in the
    database; they read as missing and make deletes no-ops.

    Attributes:
        session_factory: Callable producing AsyncSession context managers.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory
        self._logger = logger.bind(component="SqlDraftStore")

    async def read_intake(self, intake_id: str) -> IntakeRecord | None:
        key = _parse_uuid(intake_id)
        if key is None:
            self._logger.warning("invalid_intake_id", intake_id=intake_id)
            return None

        async with self.session_factory() as session:
            intake = await get_intake(session, key)
            if intake is None:
                return None

            patient = None
            if intake.patient is not None:
                patient = PatientRecord(
                    patient_id=str(intake.patient.id),
                    full_name=intake.patient.full_name,
                    date_of_birth=intake.patient.date_of_birth,
                )

            answers: dict[str, Any] = {}
            if intake.answers:
                answers = dict(intake.answers[0].answers or {})

            return IntakeRecord(
                intake_id=str(intake.id),
                service_type=intake.service.type if intake.service is not None else None,
                patient=patient,
                answers=answers,
                created_at=intake.created_at,
            )

    async def upsert_draft(self, record: DraftRecord) -> None:
        key = _parse_uuid(record.intake_id)
        if key is None:
            raise ValueError(f"Invalid intake id: {record.intake_id}")

        async with self.session_factory() as session:
            await upsert_draft(
                session,
                intake_id=key,
                artifact_type=record.artifact_type,
                status=record.status,
                content=record.content,
                error=record.error,
                validation_errors=record.validation_errors,
                ground_truth_errors=record.ground_truth_errors,
                prompt_tokens=record.prompt_tokens,
                completion_tokens=record.completion_tokens,
                generation_duration_ms=record.generation_duration_ms,
                model=record.model,
            )

    async def drafts_exist(self, intake_id: str) -> bool:
        key = _parse_uuid(intake_id)
        if key is None:
            return False

        async with self.session_factory() as session:
            present = await count_artifact_types(session, key)
        return present >= len(ArtifactType)

    async def delete_drafts(self, intake_id: str) -> None:
        key = _parse_uuid(intake_id)
        if key is None:
            return

        async with self.session_factory() as session:
            await delete_drafts(session, key)

    async def get_drafts(self, intake_id: str) -> list[DraftRecord]:
        key = _parse_uuid(intake_id)
        if key is None:
            return []

        async with self.session_factory() as session:
            drafts = await list_drafts(session, key)
        return [_to_record(d) for d in drafts]
