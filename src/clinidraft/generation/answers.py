"""Accessors for the intake answers field map.

Answers are an unordered, loosely typed mapping written by several
generations of the intake form. Field names drifted over time (camelCase
and snake_case, ``durationDays`` vs ``duration``, legacy
``specificDateFrom``/``specificDateTo``), so lookups go through these
helpers instead of indexing the dict directly.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

_LEADING_INT = re.compile(r"^\s*(\d+)")


def is_present(value: Any) -> bool:
    """True for values worth rendering: not None, not blank, not empty."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict)):
        return bool(value)
    return True


def first_present(answers: dict[str, Any], *keys: str) -> Any:
    """Return the first present value among ``keys``, or None."""
    for key in keys:
        value = answers.get(key)
        if is_present(value):
            return value
    return None


def parse_date(value: Any) -> date | None:
    """Parse a YYYY-MM-DD (or ISO datetime) answer into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_days(value: Any) -> int | None:
    """Interpret a duration answer as a whole number of days.

    Accepts integers, numeric strings and strings that start with a number
    (``"5"``, ``"2 days"``). Booleans are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return None


def start_date(answers: dict[str, Any]) -> date | None:
    """Certified start date, falling back to the legacy field."""
    return parse_date(first_present(answers, "startDate", "start_date", "specificDateFrom"))


def end_date(answers: dict[str, Any]) -> date | None:
    """Certified end date, falling back to the legacy field."""
    return parse_date(first_present(answers, "endDate", "end_date", "specificDateTo"))


def duration_days(answers: dict[str, Any]) -> int | None:
    """Requested duration in days.

    ``durationDays`` wins over ``duration``. Without either, an inclusive
    span is derived from the start and end dates when both are known.
    """
    explicit = first_present(answers, "durationDays", "duration_days", "duration")
    days = parse_days(explicit)
    if days is not None:
        return days

    start, end = start_date(answers), end_date(answers)
    if start is not None and end is not None and end >= start:
        return (end - start).days + 1
    return None


def certificate_type(answers: dict[str, Any]) -> str | None:
    """Certificate type (work, study, carer...) lower-cased."""
    value = first_present(answers, "certificateType", "certificate_type")
    return str(value).strip().lower() if value is not None else None


def text_values(answers: dict[str, Any]) -> list[str]:
    """Flatten every string in the answers, including list items."""
    values: list[str] = []
    for value in answers.values():
        if isinstance(value, str):
            values.append(value)
        elif isinstance(value, (list, tuple)):
            values.extend(str(item) for item in value if isinstance(item, (str, int, float)))
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            values.append(str(value))
    return values
