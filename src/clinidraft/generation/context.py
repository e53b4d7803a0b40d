"""Intake context formatting for the model prompt.

``format_context`` renders the intake as ``Label: value`` lines in a fixed
order. Missing answers are omitted; nothing is defaulted or inferred.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from clinidraft.generation.answers import first_present, is_present, parse_days
from clinidraft.generation.safety import check_and_sanitize
from clinidraft.store import IntakeRecord, PatientRecord


def _clean(value: Any) -> str:
    return check_and_sanitize(str(value)).output


def _request_date(intake: IntakeRecord | None, request_date: date | None) -> date | None:
    if request_date is not None:
        return request_date
    if intake is not None and intake.created_at is not None:
        return intake.created_at.date()
    return None


def format_context(
    intake: IntakeRecord | None,
    patient: PatientRecord | None,
    answers: dict[str, Any],
    request_date: date | None = None,
) -> str:
    """Render intake data as the user prompt for both artifacts.

    Line order is fixed: patient name, DOB, request date, certificate type,
    start date, end date, duration, symptoms, additional symptoms, reason,
    legacy dates (only when the modern field is absent), then clinical
    history (allergies, current medications, medical conditions, medical
    history, carer details, additional notes).

    Args:
        intake: Intake being drafted; supplies the request date when
            ``request_date`` is not given.
        patient: Requesting patient, if known.
        answers: Questionnaire answers.
        request_date: Explicit request date override.

    Returns:
        Newline-joined context string. Identical inputs give identical output.
    """
    parts: list[str] = []

    if patient is not None:
        parts.append(f"Patient: {_clean(patient.full_name)}")
        if patient.date_of_birth is not None:
            parts.append(f"DOB: {patient.date_of_birth.isoformat()}")

    requested = _request_date(intake, request_date)
    if requested is not None:
        parts.append(f"Request Date: {requested.isoformat()}")

    if is_present(answers.get("certificateType")):
        parts.append(f"Certificate Type: {_clean(answers['certificateType'])}")
    if is_present(answers.get("startDate")):
        parts.append(f"Start Date: {_clean(answers['startDate'])}")
    if is_present(answers.get("endDate")):
        parts.append(f"End Date: {_clean(answers['endDate'])}")

    if is_present(answers.get("durationDays")):
        parts.append(f"Duration: {_clean(answers['durationDays'])} day(s)")
    elif is_present(answers.get("duration")):
        raw = answers["duration"]
        if isinstance(raw, (int, str)) and str(raw).strip().isdigit():
            parts.append(f"Duration: {parse_days(raw)} day(s)")
        else:
            parts.append(f"Duration: {_clean(raw)}")

    symptoms = answers.get("symptoms")
    if isinstance(symptoms, (list, tuple)) and symptoms:
        parts.append(f"Symptoms: {', '.join(_clean(s) for s in symptoms)}")
    elif isinstance(symptoms, str) and symptoms.strip():
        parts.append(f"Symptoms: {_clean(symptoms)}")

    if is_present(answers.get("otherSymptomDetails")):
        parts.append(f"Additional Symptoms: {_clean(answers['otherSymptomDetails'])}")
    if is_present(answers.get("reason")):
        parts.append(f"Reason: {_clean(answers['reason'])}")

    # Legacy date fields
    if not is_present(answers.get("startDate")) and is_present(answers.get("specificDateFrom")):
        parts.append(f"Start Date: {_clean(answers['specificDateFrom'])}")
    if not is_present(answers.get("endDate")) and is_present(answers.get("specificDateTo")):
        parts.append(f"End Date: {_clean(answers['specificDateTo'])}")

    has_allergies = first_present(answers, "hasAllergies", "has_allergies")
    if has_allergies is True:
        detail = first_present(answers, "allergyDetails", "allergy_details", "allergies")
        parts.append(f"Allergies: {_clean(detail) if detail is not None else 'Yes (not specified)'}")
    elif has_allergies is False:
        parts.append("Allergies: Nil known")

    labelled: tuple[tuple[str, tuple[str, ...]], ...] = (
        ("Current Medications", ("currentMedications", "current_medications")),
        ("Medical Conditions", ("medicalConditions", "medical_conditions")),
        ("Medical History", ("medicalHistory", "medical_history")),
        ("Caring for", ("carerPersonName", "carer_person_name")),
        ("Relationship", ("carerRelationship", "carer_relationship")),
        ("Additional Notes", ("additionalNotes", "notes")),
    )
    for label, keys in labelled:
        value = first_present(answers, *keys)
        if value is not None:
            parts.append(f"{label}: {_clean(value)}")

    return "\n".join(parts)
