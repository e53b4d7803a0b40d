"""Database layer for Clinidraft.

This module handles database connections, session management, and the
SQLAlchemy models for AI drafts and the read-only intake tables they are
generated from.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    Base: SQLAlchemy declarative base for all models.
"""

from clinidraft.database.connection import get_engine, get_session_factory
from clinidraft.database.models import (
    ArtifactType,
    Base,
    Draft,
    DraftStatus,
    Intake,
    IntakeAnswers,
    Profile,
    Service,
    TimestampMixin,
)

__all__ = [
    "get_engine",
    "get_session_factory",
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
