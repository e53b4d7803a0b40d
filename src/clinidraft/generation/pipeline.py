"""Per-artifact generation pipeline.

One ``ArtifactPipeline`` exists per artifact type. A run is:

    model call (with timeout) -> strict parse -> ground-truth check -> upsert

and always ends in exactly one persisted Draft and one ``ArtifactOutcome``:

- parse failure: failed, content ``{"raw": <verbatim text>}``
- ground-truth failure: failed, parsed content kept for the reviewer
- success: ready, parsed content
- anything unexpected (timeout, network, store): failed, content ``{}``

No exception escapes ``run``; the orchestrator relies on that to join both
artifacts without cancellation.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

import structlog
from pydantic import BaseModel

from clinidraft.database.models.draft import ArtifactType, DraftStatus
from clinidraft.generation.model import (
    LanguageModel,
    ModelAPIError,
    ModelResponse,
    TokenUsage,
    parse_usage,
)
from clinidraft.generation.prompts import CLINICAL_NOTE_SYSTEM_PROMPT, MED_CERT_SYSTEM_PROMPT
from clinidraft.generation.safety import check_and_sanitize, validate_model_output
from clinidraft.generation.schemas import (
    SCHEMAS,
    OutputParseError,
    dump_output,
    parse_output,
)
from clinidraft.generation.validation import (
    DEFAULT_POLICY,
    GroundTruth,
    GroundTruthResult,
    ReviewPolicy,
    validate_clinical_note_against_intake,
    validate_med_cert_against_intake,
)
from clinidraft.store import DraftRecord, DraftStore, IntakeRecord

logger = structlog.get_logger(__name__)

GROUND_TRUTH_ERROR = "Ground-truth validation failed"

PromptBuilder = Callable[[str, IntakeRecord], str]
GroundTruthValidator = Callable[[Any, GroundTruth, ReviewPolicy], GroundTruthResult]


class ArtifactOutcome(BaseModel):
    """Status of one artifact as reported to the caller."""

    status: DraftStatus
    error: str | None = None


def context_prompt(context: str, intake: IntakeRecord) -> str:
    """Use the formatted intake context as the prompt unchanged."""
    return context


def med_cert_prompt(context: str, intake: IntakeRecord) -> str:
    """Append the patient's name for the certificate statement."""
    name = "Patient"
    if intake.patient is not None and intake.patient.full_name.strip():
        name = check_and_sanitize(intake.patient.full_name).output
    return f"{context}\n\nPatient Name: {name}"


def _read_response(response: Any) -> tuple[str, TokenUsage]:
    """Extract text and usage from whatever the model returned."""
    if isinstance(response, ModelResponse):
        return response.text, parse_usage(response.usage)
    if isinstance(response, dict):
        text = response.get("text")
        usage = parse_usage(response.get("usage"))
    else:
        text = getattr(response, "text", None)
        usage = parse_usage(getattr(response, "usage", None))
    if not isinstance(text, str):
        raise ModelAPIError("Model response has no text")
    return text, usage


def _describe(exc: BaseException, timeout_seconds: float) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"Model call timed out after {timeout_seconds:g}s"
    return str(exc) or exc.__class__.__name__


class ArtifactPipeline:
    """Generate, check and persist one artifact type.

    Attributes:
        artifact_type: Artifact produced by this pipeline.
        system_prompt: Fixed authoring rules for the model.
        schema: Pydantic model the output must satisfy.
        validator: Ground-truth check for the parsed output.
        build_prompt: Turns the intake context into the user prompt.
        store: Record store capability.
        model: Language model.
        policy: Review thresholds passed to the validator.
        timeout_seconds: Ceiling for the model call.
    """

    def __init__(
        self,
        artifact_type: ArtifactType,
        system_prompt: str,
        schema: type[BaseModel],
        validator: GroundTruthValidator,
        store: DraftStore,
        model: LanguageModel,
        build_prompt: PromptBuilder = context_prompt,
        policy: ReviewPolicy = DEFAULT_POLICY,
        timeout_seconds: float = 90.0,
    ) -> None:
        self.artifact_type = artifact_type
        self.system_prompt = system_prompt
        self.schema = schema
        self.validator = validator
        self.build_prompt = build_prompt
        self.store = store
        self.model = model
        self.policy = policy
        self.timeout_seconds = timeout_seconds
        self._logger = logger.bind(
            component="ArtifactPipeline", artifact_type=artifact_type.value
        )

    def _model_name(self) -> str | None:
        name = getattr(self.model, "model_name", None)
        return name if isinstance(name, str) else None

    async def run(
        self,
        intake: IntakeRecord,
        context: str,
        truth: GroundTruth,
    ) -> ArtifactOutcome:
        """Generate this artifact for ``intake`` and persist the outcome.

        Args:
            intake: Intake being drafted.
            context: Formatted intake context.
            truth: Ground truth for validation.

        Returns:
            ArtifactOutcome; never raises for generation or store errors.
        """
        intake_id = intake.intake_id
        started = time.monotonic()
        duration_ms: int | None = None
        usage = TokenUsage()

        try:
            prompt = self.build_prompt(context, intake)
            response = await asyncio.wait_for(
                self.model.generate(self.system_prompt, prompt),
                timeout=self.timeout_seconds,
            )
            duration_ms = int((time.monotonic() - started) * 1000)
            text, usage = _read_response(response)

            try:
                parsed = parse_output(text, self.schema)
            except OutputParseError as e:
                self._logger.error(
                    "draft_parse_failed",
                    intake_id=intake_id,
                    error=str(e),
                    validation_errors=e.validation_errors,
                    duration_ms=duration_ms,
                )
                await self.store.upsert_draft(
                    DraftRecord(
                        intake_id=intake_id,
                        artifact_type=self.artifact_type,
                        status=DraftStatus.failed,
                        content={"raw": text},
                        error=str(e),
                        validation_errors=e.validation_errors,
                        prompt_tokens=usage.prompt_tokens,
                        completion_tokens=usage.completion_tokens,
                        generation_duration_ms=duration_ms,
                        model=self._model_name(),
                    )
                )
                return ArtifactOutcome(status=DraftStatus.failed, error=str(e))

            content = dump_output(parsed)
            ground_truth = self.validator(parsed, truth, self.policy)
            if not ground_truth.valid:
                self._logger.warning(
                    "draft_ground_truth_failed",
                    intake_id=intake_id,
                    errors=ground_truth.errors,
                )
                await self.store.upsert_draft(
                    DraftRecord(
                        intake_id=intake_id,
                        artifact_type=self.artifact_type,
                        status=DraftStatus.failed,
                        content=content,
                        error=GROUND_TRUTH_ERROR,
                        ground_truth_errors=ground_truth.errors,
                        prompt_tokens=usage.prompt_tokens,
                        completion_tokens=usage.completion_tokens,
                        generation_duration_ms=duration_ms,
                        model=self._model_name(),
                    )
                )
                return ArtifactOutcome(status=DraftStatus.failed, error=GROUND_TRUTH_ERROR)

            leak_check = validate_model_output(text)
            if not leak_check.valid:
                self._logger.warning(
                    "draft_output_issues", intake_id=intake_id, issues=leak_check.issues
                )

            await self.store.upsert_draft(
                DraftRecord(
                    intake_id=intake_id,
                    artifact_type=self.artifact_type,
                    status=DraftStatus.ready,
                    content=content,
                    prompt_tokens=usage.prompt_tokens,
                    completion_tokens=usage.completion_tokens,
                    generation_duration_ms=duration_ms,
                    model=self._model_name(),
                )
            )
            self._logger.info(
                "draft_generated",
                intake_id=intake_id,
                duration_ms=duration_ms,
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
            )
            return ArtifactOutcome(status=DraftStatus.ready)

        except Exception as e:
            message = _describe(e, self.timeout_seconds)
            self._logger.error(
                "draft_generation_error",
                intake_id=intake_id,
                error=message,
                exc_info=True,
            )
            try:
                await self.store.upsert_draft(
                    DraftRecord(
                        intake_id=intake_id,
                        artifact_type=self.artifact_type,
                        status=DraftStatus.failed,
                        content={},
                        error=message,
                        prompt_tokens=usage.prompt_tokens,
                        completion_tokens=usage.completion_tokens,
                        generation_duration_ms=duration_ms,
                        model=self._model_name(),
                    )
                )
            except Exception as store_error:
                self._logger.error(
                    "draft_failure_not_persisted",
                    intake_id=intake_id,
                    error=str(store_error),
                )
            return ArtifactOutcome(status=DraftStatus.failed, error=message)


_ARTIFACT_RULES: dict[ArtifactType, tuple[str, GroundTruthValidator, PromptBuilder]] = {
    ArtifactType.clinical_note: (
        CLINICAL_NOTE_SYSTEM_PROMPT,
        validate_clinical_note_against_intake,
        context_prompt,
    ),
    ArtifactType.med_cert: (
        MED_CERT_SYSTEM_PROMPT,
        validate_med_cert_against_intake,
        med_cert_prompt,
    ),
}


def build_pipelines(
    store: DraftStore,
    model: LanguageModel,
    policy: ReviewPolicy = DEFAULT_POLICY,
    timeout_seconds: float = 90.0,
) -> dict[ArtifactType, ArtifactPipeline]:
    """Create one pipeline per registered output schema, sharing store and model."""
    pipelines: dict[ArtifactType, ArtifactPipeline] = {}
    for artifact_type, schema in SCHEMAS.items():
        system_prompt, validator, build_prompt = _ARTIFACT_RULES[artifact_type]
        pipelines[artifact_type] = ArtifactPipeline(
            artifact_type=artifact_type,
            system_prompt=system_prompt,
            schema=schema,
            validator=validator,
            store=store,
            model=model,
            build_prompt=build_prompt,
            policy=policy,
            timeout_seconds=timeout_seconds,
        )
    return pipelines
