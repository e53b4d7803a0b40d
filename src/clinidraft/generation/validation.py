"""Ground-truth validation of parsed drafts against the intake.

A schema-valid draft can still be wrong: the model may shift a date,
stretch the duration, drop the review flag, or name a condition or a
medication. These checks compare the parsed fields with the patient's own
answers and apply the review rules independently of what the model claims.

Any mismatch fails the artifact. Nothing is auto-corrected; the parsed
content is stored alongside the errors so the reviewer can see what the
model produced.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from clinidraft.generation import answers as intake_answers
from clinidraft.generation.schemas import ClinicalNoteOutput, MedCertOutput

DISEASE_TERMS: frozenset[str] = frozenset(
    {
        "covid",
        "covid-19",
        "coronavirus",
        "sars-cov-2",
        "influenza",
        "gastroenteritis",
        "norovirus",
        "pneumonia",
        "bronchitis",
        "tonsillitis",
        "sinusitis",
        "strep throat",
        "conjunctivitis",
        "urinary tract infection",
        "glandular fever",
        "mononucleosis",
        "shingles",
        "chickenpox",
        "measles",
        "hepatitis",
        "tuberculosis",
        "migraine",
        "asthma",
        "diabetes",
        "major depressive disorder",
        "anxiety disorder",
    }
)

MEDICATION_TERMS: frozenset[str] = frozenset(
    {
        "paracetamol",
        "panadol",
        "ibuprofen",
        "nurofen",
        "aspirin",
        "codeine",
        "antibiotic",
        "antibiotics",
        "amoxicillin",
        "antiviral",
        "tamiflu",
        "oseltamivir",
        "prednisolone",
        "ventolin",
        "salbutamol",
        "antihistamine",
        "loratadine",
        "cetirizine",
        "metformin",
        "sertraline",
        "diazepam",
        "oxycodone",
        "tramadol",
        "omeprazole",
    }
)

PROHIBITED_TERMS: frozenset[str] = DISEASE_TERMS | MEDICATION_TERMS

_ISO_DATE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_AU_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
_LIST_SPLIT = re.compile(r"[,;\n/]|\band\b", re.IGNORECASE)


class ReviewPolicy(BaseModel):
    """Thresholds beyond which a doctor must review the certificate.

    Attributes:
        max_duration_days: Durations above this require review.
        max_backdate_days: Start dates more than this many days before the
            request date require review.
    """

    max_duration_days: int = 3
    max_backdate_days: int = 3


DEFAULT_POLICY = ReviewPolicy()


class GroundTruth(BaseModel):
    """What the intake says, as used to check a draft.

    Attributes:
        answers: Questionnaire answers.
        request_date: Date the patient made the request.
        date_of_birth: Patient date of birth, if known.
    """

    answers: dict[str, Any] = Field(default_factory=dict)
    request_date: date
    date_of_birth: date | None = None


class GroundTruthResult(BaseModel):
    """Outcome of ground-truth validation."""

    valid: bool
    errors: list[str] = Field(default_factory=list)


def _term_pattern(term: str) -> re.Pattern[str]:
    return re.compile(r"(?<![a-z0-9])" + re.escape(term) + r"(?![a-z0-9])", re.IGNORECASE)


def find_terms(text: str, terms: Iterable[str]) -> list[str]:
    """Return the terms that occur in ``text`` as whole words, sorted."""
    return sorted(t for t in set(terms) if t and _term_pattern(t).search(text))


_NO_ANSWER = frozenset({"nil", "none", "n/a", "nil known", "none known", "none reported"})


def _reported_terms(answers: dict[str, Any], *keys: str) -> set[str]:
    raw = intake_answers.first_present(answers, *keys)
    if raw is None:
        return set()
    items = raw if isinstance(raw, (list, tuple)) else [raw]
    names: set[str] = set()
    for item in items:
        for token in _LIST_SPLIT.split(str(item)):
            token = token.strip().lower()
            if len(token) >= 3 and token not in _NO_ANSWER:
                names.add(token)
    return names


def reported_medications(answers: dict[str, Any]) -> set[str]:
    """Medication names the patient listed in their answers."""
    return _reported_terms(
        answers, "currentMedications", "current_medications", "medication", "medicationName"
    )


def reported_conditions(answers: dict[str, Any]) -> set[str]:
    """Conditions and history the patient listed in their answers."""
    conditions = _reported_terms(answers, "medicalConditions", "medical_conditions")
    return conditions | _reported_terms(answers, "medicalHistory", "medical_history")


def review_reasons(
    truth: GroundTruth,
    duration_days: int | None,
    start: date | None,
    policy: ReviewPolicy = DEFAULT_POLICY,
) -> list[str]:
    """Rules that force ``requiresReview`` to be true.

    Args:
        truth: Intake ground truth (request date).
        duration_days: Certified duration in days.
        start: Certified start date.
        policy: Review thresholds.

    Returns:
        One human-readable reason per rule that fired; empty if none.
    """
    reasons: list[str] = []
    if duration_days is not None and duration_days > policy.max_duration_days:
        reasons.append(
            f"duration of {duration_days} days exceeds {policy.max_duration_days} days"
        )
    if start is not None:
        backdated = (truth.request_date - start).days
        if backdated > policy.max_backdate_days:
            reasons.append(
                f"start date {start.isoformat()} is backdated {backdated} days "
                f"before the request date {truth.request_date.isoformat()}"
            )
    return reasons


def _dates_in(text: str) -> set[date]:
    found: set[date] = set()
    for year, month, day in _ISO_DATE.findall(text):
        try:
            found.add(date(int(year), int(month), int(day)))
        except ValueError:
            continue
    for day, month, year in _AU_DATE.findall(text):
        try:
            found.add(date(int(year), int(month), int(day)))
        except ValueError:
            continue
    return found


def validate_med_cert_against_intake(
    output: MedCertOutput,
    truth: GroundTruth,
    policy: ReviewPolicy = DEFAULT_POLICY,
) -> GroundTruthResult:
    """Check a parsed certificate against the intake and review rules.

    Checks:
    - startDate, endDate, durationDays and certificateType equal the
      intake's values wherever the intake states them
    - durationDays equals the inclusive span of startDate..endDate
    - requiresReview is true whenever the duration or backdating rule fires
    - no disease or medication term (fixed list plus the patient's own
      medications and conditions) appears in any free-text field

    Args:
        output: Parsed certificate.
        truth: Intake ground truth.
        policy: Review thresholds.

    Returns:
        GroundTruthResult with one message per failed check.
    """
    answers = truth.answers
    errors: list[str] = []

    expected_start = intake_answers.start_date(answers)
    if expected_start is not None and output.start_date != expected_start:
        errors.append(
            f"startDate {output.start_date.isoformat()} does not match intake start date "
            f"{expected_start.isoformat()}"
        )

    expected_end = intake_answers.end_date(answers)
    if expected_end is not None and output.end_date != expected_end:
        errors.append(
            f"endDate {output.end_date.isoformat()} does not match intake end date "
            f"{expected_end.isoformat()}"
        )

    expected_days = intake_answers.duration_days(answers)
    if expected_days is not None and output.duration_days != expected_days:
        errors.append(
            f"durationDays {output.duration_days} does not match intake duration "
            f"of {expected_days} days"
        )

    span = (output.end_date - output.start_date).days + 1
    if output.duration_days != span:
        errors.append(
            f"durationDays {output.duration_days} does not match the {span}-day span "
            f"from {output.start_date.isoformat()} to {output.end_date.isoformat()}"
        )

    expected_type = intake_answers.certificate_type(answers)
    if expected_type is not None and output.certificate_type.strip().lower() != expected_type:
        errors.append(
            f"certificateType {output.certificate_type!r} does not match intake "
            f"certificate type {expected_type!r}"
        )

    # Intake values win over the model's when deciding on review
    reasons = review_reasons(
        truth,
        expected_days if expected_days is not None else output.duration_days,
        expected_start if expected_start is not None else output.start_date,
        policy,
    )
    if reasons and not output.flags.requires_review:
        errors.append("requiresReview must be true: " + "; ".join(reasons))

    prohibited = (
        PROHIBITED_TERMS | reported_medications(answers) | reported_conditions(answers)
    )
    fields = {
        "certificateStatement": output.certificate_statement,
        "symptomsSummary": output.symptoms_summary,
        "clinicalNotes": output.clinical_notes,
        "flags.flagReason": output.flags.flag_reason or "",
    }
    for name, text in fields.items():
        for term in find_terms(text, prohibited):
            errors.append(f"{name} names a prohibited condition or medication: {term!r}")

    return GroundTruthResult(valid=not errors, errors=errors)


def validate_clinical_note_against_intake(
    output: ClinicalNoteOutput,
    truth: GroundTruth,
    policy: ReviewPolicy = DEFAULT_POLICY,
) -> GroundTruthResult:
    """Check a parsed clinical note for content the intake does not support.

    The note may repeat what the patient reported (including their own
    medications or conditions) but must not introduce new ones, must not
    cite dates absent from the intake, and must carry the review flag
    under the same rules as the certificate.

    Args:
        output: Parsed clinical note.
        truth: Intake ground truth.
        policy: Review thresholds.

    Returns:
        GroundTruthResult with one message per failed check.
    """
    answers = truth.answers
    errors: list[str] = []

    source_text = "\n".join(intake_answers.text_values(answers))
    reported = set(find_terms(source_text, PROHIBITED_TERMS))

    fields = {
        "presentingComplaint": output.presenting_complaint,
        "historyOfPresentIllness": output.history_of_present_illness,
        "relevantInformation": output.relevant_information,
        "certificateDetails": output.certificate_details,
        "flags.flagReason": output.flags.flag_reason or "",
    }

    known_dates = _dates_in(source_text) | {truth.request_date}
    for value in (intake_answers.start_date(answers), intake_answers.end_date(answers)):
        if value is not None:
            known_dates.add(value)
    if truth.date_of_birth is not None:
        known_dates.add(truth.date_of_birth)

    for name, text in fields.items():
        for term in find_terms(text, PROHIBITED_TERMS):
            if term not in reported:
                errors.append(f"{name} mentions {term!r}, which is not in the intake")
        for cited in sorted(_dates_in(text) - known_dates):
            errors.append(f"{name} cites date {cited.isoformat()}, which is not in the intake")

    reasons = review_reasons(
        truth,
        intake_answers.duration_days(answers),
        intake_answers.start_date(answers),
        policy,
    )
    if reasons and not output.flags.requires_review:
        errors.append("requiresReview must be true: " + "; ".join(reasons))

    return GroundTruthResult(valid=not errors, errors=errors)
