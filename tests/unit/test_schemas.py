"""Unit tests for strict output parsing."""

from __future__ import annotations

import json
from datetime import date

import pytest

from clinidraft.database.models.draft import ArtifactType
from clinidraft.generation.schemas import (
    SCHEMAS,
    ClinicalNoteOutput,
    MedCertOutput,
    OutputParseError,
    dump_output,
    parse_output,
)


def cert(**overrides) -> dict:
    payload = {
        "certificateStatement": "Unfit for work.",
        "symptomsSummary": "Acute illness",
        "clinicalNotes": "Reports fever.",
        "startDate": "2026-10-17",
        "endDate": "2026-10-18",
        "durationDays": 2,
        "certificateType": "work",
        "flags": {"requiresReview": False, "flagReason": None},
    }
    payload.update(overrides)
    return payload


class TestParseOutput:
    """parse_output acceptance and rejection."""

    def test_valid_certificate(self) -> None:
        parsed = parse_output(json.dumps(cert()), MedCertOutput)

        assert parsed.start_date == date(2026, 10, 17)
        assert parsed.duration_days == 2
        assert parsed.flags.requires_review is False

    def test_surrounding_whitespace_allowed(self) -> None:
        assert parse_output("\n  " + json.dumps(cert()) + "\n", MedCertOutput).duration_days == 2

    def test_unknown_fields_ignored(self) -> None:
        parsed = parse_output(json.dumps(cert(confidence=0.9)), MedCertOutput)
        assert "confidence" not in dump_output(parsed)

    @pytest.mark.parametrize(
        "text",
        [
            "```json\n" + json.dumps(cert()) + "\n```",
            "Here is the certificate: " + json.dumps(cert()),
            "I'm sorry, I can't help with that.",
        ],
    )
    def test_wrapped_or_prose_rejected(self, text: str) -> None:
        with pytest.raises(OutputParseError) as exc_info:
            parse_output(text, MedCertOutput)

        assert str(exc_info.value) == "Model output is not valid JSON"
        assert exc_info.value.validation_errors[0]["type"] == "json_invalid"

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_rejected(self, text: str) -> None:
        with pytest.raises(OutputParseError, match="empty output"):
            parse_output(text, MedCertOutput)

    def test_non_object_rejected(self) -> None:
        with pytest.raises(OutputParseError, match="must be a JSON object"):
            parse_output("[1, 2]", MedCertOutput)

    def test_missing_field_reported(self) -> None:
        payload = cert()
        del payload["endDate"]

        with pytest.raises(OutputParseError) as exc_info:
            parse_output(json.dumps(payload), MedCertOutput)

        assert exc_info.value.validation_errors == [
            {"path": "endDate", "message": "Field required", "type": "missing"}
        ]

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("durationDays", "2"),
            ("durationDays", 2.5),
            ("durationDays", 0),
            ("startDate", "17/10/2026"),
            ("certificateType", ""),
        ],
    )
    def test_mistyped_fields_rejected(self, field: str, value: object) -> None:
        with pytest.raises(OutputParseError) as exc_info:
            parse_output(json.dumps(cert(**{field: value})), MedCertOutput)

        assert [e["path"] for e in exc_info.value.validation_errors] == [field]

    def test_string_boolean_flag_rejected(self) -> None:
        payload = cert(flags={"requiresReview": "false"})

        with pytest.raises(OutputParseError) as exc_info:
            parse_output(json.dumps(payload), MedCertOutput)

        assert exc_info.value.validation_errors[0]["path"] == "flags.requiresReview"

    def test_end_before_start_rejected(self) -> None:
        with pytest.raises(OutputParseError, match="schema validation"):
            parse_output(json.dumps(cert(endDate="2026-10-16")), MedCertOutput)

    def test_clinical_note_requires_flags(self) -> None:
        payload = {
            "presentingComplaint": "Fever",
            "historyOfPresentIllness": "Two days.",
            "relevantInformation": "",
            "certificateDetails": "",
        }

        with pytest.raises(OutputParseError) as exc_info:
            parse_output(json.dumps(payload), ClinicalNoteOutput)

        assert [e["path"] for e in exc_info.value.validation_errors] == ["flags"]


class TestDumpOutput:
    """Stored content uses camelCase names and ISO dates."""

    def test_camel_case_round_trip_shape(self) -> None:
        parsed = parse_output(json.dumps(cert()), MedCertOutput)

        assert dump_output(parsed) == cert()


def test_schema_registry() -> None:
    assert SCHEMAS == {
        ArtifactType.clinical_note: ClinicalNoteOutput,
        ArtifactType.med_cert: MedCertOutput,
    }
