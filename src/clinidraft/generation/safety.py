"""Prompt-safety checks for patient-supplied text and model output.

Intake answers are free text typed by patients and are pasted into the
model prompt verbatim, so each value is screened for prompt-injection
phrasing before formatting. Model output is screened for leaked system
prompt text; that check only produces warnings.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

FILTERED_PLACEHOLDER = "[content filtered]"

MAX_ANSWER_LENGTH = 2000

_INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bignore\s+(all\s+)?(the\s+)?(previous|prior|above|earlier)\s+(instructions|rules|prompts?)",
        r"\bdisregard\s+(all\s+)?(the\s+)?(previous|prior|above|earlier|system)\b",
        r"\byou\s+are\s+now\s+(a|an|the)\b",
        r"\b(reveal|print|show|repeat)\s+(your|the)\s+(system\s+)?prompt\b",
        r"\bsystem\s*prompt\b",
        r"<\|?(im_start|im_end|system|endoftext)\|?>",
        r"^\s*#{2,}\s*(system|instruction)",
        r"\bset\s+requiresReview\s+to\s+false\b",
    )
)

_LEAK_MARKERS: tuple[str, ...] = (
    "IMPORTANT RULES:",
    "OUTPUT: Return ONLY valid JSON",
    "You are a medical documentation assistant",
)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


class SanitizeResult(BaseModel):
    """Outcome of screening one patient-supplied value.

    Attributes:
        output: Cleaned value safe to place in a prompt.
        blocked: True if the value matched an injection pattern.
        matched: Patterns that matched, for logging.
    """

    output: str
    blocked: bool = False
    matched: list[str] = Field(default_factory=list)


class OutputCheck(BaseModel):
    """Result of screening model output for leaked prompt text."""

    valid: bool
    issues: list[str] = Field(default_factory=list)


def check_and_sanitize(value: str) -> SanitizeResult:
    """Screen and clean a single free-text value.

    Control characters are removed and the value is truncated to
    MAX_ANSWER_LENGTH. Values matching an injection pattern are blocked
    outright rather than partially redacted.

    Args:
        value: Raw patient-supplied text.

    Returns:
        SanitizeResult with the cleaned text or the blocked flag set.
    """
    cleaned = _CONTROL_CHARS.sub("", value).strip()
    if len(cleaned) > MAX_ANSWER_LENGTH:
        cleaned = cleaned[:MAX_ANSWER_LENGTH]

    matched = [p.pattern for p in _INJECTION_PATTERNS if p.search(cleaned)]
    if matched:
        return SanitizeResult(output=FILTERED_PLACEHOLDER, blocked=True, matched=matched)
    return SanitizeResult(output=cleaned)


def validate_model_output(text: str) -> OutputCheck:
    """Check model output for fragments of the system prompt."""
    issues = [
        f"Output contains prompt fragment: {marker!r}"
        for marker in _LEAK_MARKERS
        if marker.lower() in text.lower()
    ]
    return OutputCheck(valid=not issues, issues=issues)
