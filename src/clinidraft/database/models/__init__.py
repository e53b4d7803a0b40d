"""SQLAlchemy ORM models for Clinidraft.

The ``ai_drafts`` table is owned by this package. The intake tables
(services, profiles, intakes, intake_answers) are owned upstream and mapped
here read-only so an intake can be loaded for generation.
"""

from clinidraft.database.models.base import Base, TimestampMixin
from clinidraft.database.models.draft import ArtifactType, Draft, DraftStatus
from clinidraft.database.models.intake import Intake, IntakeAnswers, Profile, Service

__all__ = [
    "Base",
    "TimestampMixin",
    "ArtifactType",
    "Draft",
    "DraftStatus",
    "Intake",
    "IntakeAnswers",
    "Profile",
    "Service",
]
