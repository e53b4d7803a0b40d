"""Output schemas and strict parsing of model responses.

Each artifact has a Pydantic model describing the exact JSON object the
system prompt asks for. Parsing is strict: the response must be a bare JSON
object (no prose, no markdown fences) whose required fields are present
with the right JSON types. Anything else is a parse failure carrying
field-level validation errors for the stored draft.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from clinidraft.database.models.draft import ArtifactType


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DraftFlags(_CamelModel):
    """Review flags reported by the model.

    Attributes:
        requires_review: Model's own claim that a doctor must look closely.
        flag_reason: Why review is required, if it is.
    """

    requires_review: bool
    flag_reason: str | None = None


class ClinicalNoteOutput(_CamelModel):
    """Structured clinical note draft."""

    presenting_complaint: str = Field(..., min_length=1)
    history_of_present_illness: str = Field(..., min_length=1)
    relevant_information: str
    certificate_details: str
    flags: DraftFlags


class MedCertOutput(_CamelModel):
    """Structured medical certificate draft.

    Attributes:
        certificate_statement: Certificate wording for the doctor to sign.
        symptoms_summary: Short, non-diagnostic symptom category.
        clinical_notes: One or two sentences of observation.
        start_date: First day certified.
        end_date: Last day certified (inclusive).
        duration_days: Number of days certified.
        certificate_type: work, study or carer.
        flags: Review flags.
    """

    certificate_statement: str = Field(..., min_length=1)
    symptoms_summary: str
    clinical_notes: str
    start_date: date
    end_date: date
    duration_days: int = Field(..., ge=1)
    certificate_type: str = Field(..., min_length=1)
    flags: DraftFlags

    @model_validator(mode="after")
    def validate_date_order(self) -> MedCertOutput:
        """Reject certificates that end before they start."""
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


SCHEMAS: dict[ArtifactType, type[BaseModel]] = {
    ArtifactType.clinical_note: ClinicalNoteOutput,
    ArtifactType.med_cert: MedCertOutput,
}

ModelT = TypeVar("ModelT", bound=BaseModel)


class OutputParseError(ValueError):
    """Raised when model output does not satisfy the artifact schema.

    Attributes:
        validation_errors: Field-level problems, JSON-serialisable.
    """

    def __init__(self, message: str, validation_errors: list[dict[str, Any]] | None = None):
        self.validation_errors = validation_errors or []
        super().__init__(message)


def _describe_errors(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "path": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def parse_output(text: str, schema: type[ModelT]) -> ModelT:
    """Parse raw model text strictly against ``schema``.

    JSON types are not coerced: ``"durationDays": "3"`` is rejected, and
    dates must be ISO ``YYYY-MM-DD`` strings.

    Args:
        text: Raw model response text.
        schema: Pydantic model for the artifact.

    Returns:
        Validated model instance.

    Raises:
        OutputParseError: If the text is empty, not a bare JSON object, or
            violates the schema.

    Example:
        >>> parse_output('{"requiresReview": true}', DraftFlags).requires_review
        True
    """
    stripped = text.strip()
    if not stripped:
        raise OutputParseError("Model returned empty output")

    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as e:
        raise OutputParseError(
            "Model output is not valid JSON",
            [{"path": "", "message": str(e), "type": "json_invalid"}],
        ) from e

    if not isinstance(data, dict):
        raise OutputParseError(
            "Model output must be a JSON object",
            [{"path": "", "message": f"got {type(data).__name__}", "type": "model_type"}],
        )

    try:
        return schema.model_validate_json(stripped, strict=True)
    except ValidationError as e:
        errors = _describe_errors(e)
        raise OutputParseError(
            f"Model output failed schema validation ({len(errors)} error(s))",
            errors,
        ) from e


def dump_output(output: BaseModel) -> dict[str, Any]:
    """Serialise parsed output for storage using the camelCase wire names."""
    return output.model_dump(mode="json", by_alias=True)
