"""Service type normalisation.

Intakes reference a service whose ``type`` column has been written in a
handful of spellings over time (``med_certs``, ``medical-certificate``,
``Med Cert``...). Eligibility checks compare canonical snake_case values.
"""

from __future__ import annotations

CANONICAL_SERVICE_TYPES: frozenset[str] = frozenset(
    {
        "med_certs",
        "common_scripts",
        "weight_loss",
        "mens_health",
        "womens_health",
        "referrals",
        "pathology",
    }
)

_SERVICE_ALIASES: dict[str, str] = {
    "medical_certificate": "med_certs",
    "med_cert": "med_certs",
    "medcert": "med_certs",
    "repeat_prescription": "common_scripts",
    "repeat_script": "common_scripts",
    "repeat_scripts": "common_scripts",
    "prescription": "common_scripts",
    "script": "common_scripts",
    "scripts": "common_scripts",
    "weight": "weight_loss",
    "weightloss": "weight_loss",
    "mens": "mens_health",
    "womens": "womens_health",
    "referral": "referrals",
}


def normalize_service_type(raw: str | None) -> str | None:
    """Map a stored service type to its canonical value.

    Args:
        raw: Service type as stored on the service row.

    Returns:
        Canonical service type, or None if unrecognised or empty.
    """
    if not raw:
        return None

    normalized = raw.strip().lower()
    for separator in ("-", " "):
        normalized = normalized.replace(separator, "_")

    if normalized in CANONICAL_SERVICE_TYPES:
        return normalized
    return _SERVICE_ALIASES.get(normalized)


def is_eligible(raw: str | None, eligible: list[str] | frozenset[str]) -> bool:
    """Return True if the raw service type normalises into ``eligible``."""
    canonical = normalize_service_type(raw)
    return canonical is not None and canonical in eligible
