"""Draft generation orchestrator.

``DraftOrchestrator.generate_drafts`` is the single entry point for
producing the clinical note and certificate drafts of an intake. It checks
idempotency, loads the intake, gates on service type, formats the context
once and fans out to both artifact pipelines, waiting for both.

Only a missing intake fails the whole call. Every generation-stage problem
is captured per artifact by the pipelines, so ``success=True`` says the
call ran, not that either draft is usable.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from datetime import date

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from clinidraft.config import GenerationConfig
from clinidraft.database.models.draft import ArtifactType, DraftStatus
from clinidraft.generation.context import format_context
from clinidraft.generation.guard import IdempotencyGuard
from clinidraft.generation.model import LanguageModel
from clinidraft.generation.pipeline import ArtifactOutcome, ArtifactPipeline, build_pipelines
from clinidraft.generation.validation import GroundTruth, ReviewPolicy
from clinidraft.logging import bind_intake_context
from clinidraft.services import is_eligible, normalize_service_type
from clinidraft.store import DraftStore, IntakeRecord

logger = structlog.get_logger(__name__)

INTAKE_NOT_FOUND = "Intake not found"


class ArtifactStatus(BaseModel):
    """Per-artifact status in a generation result."""

    status: DraftStatus
    error: str | None = None


class GenerateDraftsResult(BaseModel):
    """Combined outcome of one ``generate_drafts`` call.

    Serialises with camelCase keys (``clinicalNote``, ``medCert``) for the
    HTTP surface.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    skipped: bool = False
    clinical_note: ArtifactStatus | None = None
    med_cert: ArtifactStatus | None = None
    error: str | None = None


def request_date_for(intake: IntakeRecord, today: date) -> date:
    """The date the patient made the request (falls back to ``today``)."""
    if intake.created_at is not None:
        return intake.created_at.date()
    return today


class DraftOrchestrator:
    """Coordinates idempotency, loading, gating and both pipelines.

    Attributes:
        store: Record store capability handle.
        model: Language model shared by both pipelines.
        config: Generation policy.
        guard: Idempotency guard over ``store``.
        pipelines: One pipeline per artifact type.
    """

    def __init__(
        self,
        store: DraftStore,
        model: LanguageModel,
        config: GenerationConfig | None = None,
        clock: Callable[[], date] | None = None,
        pipelines: dict[ArtifactType, ArtifactPipeline] | None = None,
    ) -> None:
        self.store = store
        self.model = model
        self.config = config or GenerationConfig()
        self.guard = IdempotencyGuard(store)
        self._clock = clock or date.today
        self.policy = ReviewPolicy(
            max_duration_days=self.config.review_duration_days,
            max_backdate_days=self.config.review_backdate_days,
        )
        self.pipelines = pipelines or build_pipelines(
            store,
            model,
            policy=self.policy,
            timeout_seconds=self.config.timeout_seconds,
        )
        self._logger = logger.bind(component="DraftOrchestrator")

    async def generate_drafts(
        self, intake_id: str, force: bool = False
    ) -> GenerateDraftsResult:
        """Generate both drafts for an intake.

        Args:
            intake_id: Intake to draft.
            force: Delete existing drafts and regenerate.

        Returns:
            GenerateDraftsResult. Store errors outside the pipelines
            (existence check, delete, intake load) are logged and reported
            as ``success=False`` with the error message.
        """
        bind_intake_context(intake_id)
        async with self.guard.lock(intake_id):
            try:
                return await self._generate(intake_id, force)
            except Exception as e:
                self._logger.error(
                    "draft_generation_error",
                    intake_id=intake_id,
                    error=str(e),
                    exc_info=True,
                )
                return GenerateDraftsResult(
                    success=False, error=str(e) or e.__class__.__name__
                )

    async def _generate(self, intake_id: str, force: bool) -> GenerateDraftsResult:
        started = time.monotonic()
        self._logger.info("draft_generation_started", intake_id=intake_id, force=force)

        if not force and await self.guard.drafts_exist(intake_id):
            self._logger.info("draft_generation_skipped", intake_id=intake_id, reason="exists")
            return GenerateDraftsResult(success=True, skipped=True)

        if force:
            await self.guard.delete_drafts(intake_id)

        intake = await self.store.read_intake(intake_id)
        if intake is None:
            self._logger.error("intake_not_found", intake_id=intake_id)
            return GenerateDraftsResult(success=False, error=INTAKE_NOT_FOUND)

        if not is_eligible(intake.service_type, self.config.eligible_service_types):
            self._logger.info(
                "draft_generation_skipped",
                intake_id=intake_id,
                reason="ineligible_service",
                service_type=intake.service_type,
                normalized=normalize_service_type(intake.service_type),
            )
            return GenerateDraftsResult(success=True, skipped=True)

        request_date = request_date_for(intake, self._clock())
        context = format_context(intake, intake.patient, intake.answers, request_date)
        truth = GroundTruth(
            answers=intake.answers,
            request_date=request_date,
            date_of_birth=intake.patient.date_of_birth if intake.patient else None,
        )

        note_outcome, cert_outcome = await asyncio.gather(
            self.pipelines[ArtifactType.clinical_note].run(intake, context, truth),
            self.pipelines[ArtifactType.med_cert].run(intake, context, truth),
        )

        result = GenerateDraftsResult(
            success=True,
            clinical_note=_status(note_outcome),
            med_cert=_status(cert_outcome),
        )
        self._logger.info(
            "draft_generation_completed",
            intake_id=intake_id,
            clinical_note=note_outcome.status.value,
            med_cert=cert_outcome.status.value,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return result


def _status(outcome: ArtifactOutcome) -> ArtifactStatus:
    return ArtifactStatus(status=outcome.status, error=outcome.error)
