"""Shared fixtures for unit tests.

Provides an in-memory ``DraftStore`` and a scripted language model so the
orchestrator and pipelines can be exercised without a database or network.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any

import pytest

from clinidraft.database.models.draft import ArtifactType
from clinidraft.generation.model import ModelResponse, TokenUsage
from clinidraft.generation.prompts import CLINICAL_NOTE_SYSTEM_PROMPT, MED_CERT_SYSTEM_PROMPT
from clinidraft.store import DraftRecord, IntakeRecord, PatientRecord

INTAKE_ID = "5b1f2c0e-8a44-4c1e-9d63-2f7f0c9a1e01"
REQUEST_DATE = date(2026, 10, 18)


class FakeDraftStore:
    """In-memory DraftStore recording every call.

    Attributes:
        intakes: Intakes that ``read_intake`` can find.
        drafts: Stored drafts keyed by (intake_id, artifact_type).
        upserts: Every record passed to ``upsert_draft``, in order.
        deletes: Intake ids passed to ``delete_drafts``.
        fail_upsert_for: Artifact types whose upserts raise.
    """

    def __init__(self) -> None:
        self.intakes: dict[str, IntakeRecord] = {}
        self.drafts: dict[tuple[str, ArtifactType], DraftRecord] = {}
        self.upserts: list[DraftRecord] = []
        self.deletes: list[str] = []
        self.reads: list[str] = []
        self.fail_upsert_for: set[ArtifactType] = set()

    def add_intake(self, intake: IntakeRecord) -> None:
        self.intakes[intake.intake_id] = intake

    async def read_intake(self, intake_id: str) -> IntakeRecord | None:
        self.reads.append(intake_id)
        return self.intakes.get(intake_id)

    async def upsert_draft(self, record: DraftRecord) -> None:
        self.upserts.append(record)
        if record.artifact_type in self.fail_upsert_for:
            raise ConnectionError("store unavailable")
        self.drafts[(record.intake_id, record.artifact_type)] = record

    async def drafts_exist(self, intake_id: str) -> bool:
        return all((intake_id, t) in self.drafts for t in ArtifactType)

    async def delete_drafts(self, intake_id: str) -> None:
        self.deletes.append(intake_id)
        for artifact_type in ArtifactType:
            self.drafts.pop((intake_id, artifact_type), None)

    async def get_drafts(self, intake_id: str) -> list[DraftRecord]:
        return [
            self.drafts[(intake_id, t)]
            for t in ArtifactType
            if (intake_id, t) in self.drafts
        ]

    def draft(self, artifact_type: ArtifactType, intake_id: str = INTAKE_ID) -> DraftRecord:
        return self.drafts[(intake_id, artifact_type)]


Script = str | Exception | ModelResponse | dict[str, Any] | Callable[[str], Any]


class ScriptedModel:
    """LanguageModel returning scripted responses per artifact.

    A script entry may be response text, a ``ModelResponse``, a raw dict,
    an exception to raise, or a callable taking the prompt.

    Attributes:
        scripts: Response per artifact type.
        calls: (artifact_type, prompt) for every generate call.
        delay: Seconds to sleep before answering.
    """

    model_name = "scripted-model"

    def __init__(self, scripts: dict[ArtifactType, Script] | None = None, delay: float = 0.0):
        self.scripts: dict[ArtifactType, Script] = dict(scripts or {})
        self.calls: list[tuple[ArtifactType, str]] = []
        self.delay = delay

    @staticmethod
    def artifact_for(system: str) -> ArtifactType:
        if system == CLINICAL_NOTE_SYSTEM_PROMPT:
            return ArtifactType.clinical_note
        if system == MED_CERT_SYSTEM_PROMPT:
            return ArtifactType.med_cert
        raise AssertionError("unexpected system prompt")

    def calls_for(self, artifact_type: ArtifactType) -> list[str]:
        return [prompt for t, prompt in self.calls if t == artifact_type]

    async def generate(self, system: str, prompt: str) -> Any:
        artifact_type = self.artifact_for(system)
        self.calls.append((artifact_type, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)

        script = self.scripts[artifact_type]
        if callable(script) and not isinstance(script, type):
            script = script(prompt)
        if isinstance(script, Exception):
            raise script
        if isinstance(script, str):
            return ModelResponse(text=script, usage=TokenUsage(prompt_tokens=120, completion_tokens=80))
        return script


# ---------------------------------------------------------------------------
# Canonical intake and compliant outputs
# ---------------------------------------------------------------------------


def make_answers(**overrides: Any) -> dict[str, Any]:
    answers: dict[str, Any] = {
        "certificateType": "work",
        "startDate": "2026-10-17",
        "endDate": "2026-10-18",
        "durationDays": 2,
        "symptoms": ["Fever", "Headache"],
        "otherSymptomDetails": "Felt unwell since yesterday morning",
        "reason": "Unable to attend work",
    }
    answers.update(overrides)
    return {k: v for k, v in answers.items() if v is not None}


def make_intake(
    answers: dict[str, Any] | None = None,
    service_type: str | None = "med_certs",
    intake_id: str = INTAKE_ID,
) -> IntakeRecord:
    return IntakeRecord(
        intake_id=intake_id,
        service_type=service_type,
        patient=PatientRecord(
            patient_id="c0a8012e-0000-4000-8000-000000000001",
            full_name="Alex Taylor",
            date_of_birth=date(1990, 5, 1),
        ),
        answers=make_answers() if answers is None else answers,
        created_at=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
    )


def clinical_note_payload(**flags: Any) -> dict[str, Any]:
    return {
        "presentingComplaint": "Fever and headache",
        "historyOfPresentIllness": "Symptoms began yesterday morning; requesting 2 days off work.",
        "relevantInformation": "No further history provided.",
        "certificateDetails": "Work certificate, 2026-10-17 to 2026-10-18 (2 days).",
        "flags": {"requiresReview": False, "flagReason": None, **flags},
    }


def med_cert_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "certificateStatement": (
            "This is to certify that Alex Taylor was unfit for work from "
            "17/10/2026 to 18/10/2026 inclusive."
        ),
        "symptomsSummary": "Acute illness",
        "clinicalNotes": "Patient reports fever and headache.",
        "startDate": "2026-10-17",
        "endDate": "2026-10-18",
        "durationDays": 2,
        "certificateType": "work",
        "flags": {"requiresReview": False, "flagReason": None},
    }
    payload.update(overrides)
    return payload


def as_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload)


@pytest.fixture
def store() -> FakeDraftStore:
    """Fake store holding the canonical eligible intake."""
    fake = FakeDraftStore()
    fake.add_intake(make_intake())
    return fake


@pytest.fixture
def compliant_model() -> ScriptedModel:
    """Model returning valid, policy-compliant JSON for both artifacts."""
    return ScriptedModel(
        {
            ArtifactType.clinical_note: as_json(clinical_note_payload()),
            ArtifactType.med_cert: as_json(med_cert_payload()),
        }
    )


@pytest.fixture
def intake_id() -> str:
    return INTAKE_ID


@pytest.fixture
def intake_factory() -> Callable[..., IntakeRecord]:
    """``make_intake(answers=None, service_type="med_certs", intake_id=INTAKE_ID)``."""
    return make_intake


@pytest.fixture
def answers_factory() -> Callable[..., dict[str, Any]]:
    """``make_answers(**overrides)``; a None override removes the field."""
    return make_answers


@pytest.fixture
def note_json() -> Callable[..., str]:
    """Compliant clinical note JSON; keyword args override the flags."""
    return lambda **flags: as_json(clinical_note_payload(**flags))


@pytest.fixture
def cert_json() -> Callable[..., str]:
    """Compliant certificate JSON; keyword args override top-level fields."""
    return lambda **overrides: as_json(med_cert_payload(**overrides))


@pytest.fixture
def model_factory() -> type[ScriptedModel]:
    """``ScriptedModel(scripts, delay=0.0)``."""
    return ScriptedModel
