"""Pytest fixtures for integration tests.

Provides async database fixtures backed by a throwaway SQLite database.
Production runs on PostgreSQL (JSONB columns, native enums); the queries
used by draft generation stick to constructs both dialects support, so
SQLite is enough to exercise them end to end.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from clinidraft.database.models.base import Base
from clinidraft.database.models.intake import Intake, IntakeAnswers, Profile, Service
from clinidraft.store import SqlDraftStore

SeedIntake = Callable[..., Awaitable[str]]


def default_answers() -> dict[str, Any]:
    return {
        "certificateType": "work",
        "startDate": "2026-10-17",
        "endDate": "2026-10-18",
        "durationDays": 2,
        "symptoms": ["Fever", "Headache"],
        "reason": "Unable to attend work",
    }


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a file-backed SQLite async engine with all tables.

    A file rather than :memory: gives each session its own connection, so
    the two pipelines can write concurrently as they do on PostgreSQL.

    Yields:
        Configured AsyncEngine instance.
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'clinidraft.db'}", echo=False
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def sql_store(session_factory: async_sessionmaker[AsyncSession]) -> SqlDraftStore:
    return SqlDraftStore(session_factory)


@pytest.fixture
def seed_intake(session_factory: async_sessionmaker[AsyncSession]) -> SeedIntake:
    """Insert a service, patient, intake and answers row; returns the intake id.

    Keyword arguments:
        service_type: ``services.type`` value (None leaves it null).
        answers: Answers document (defaults to a two-day work certificate).
        with_patient: Whether the intake references a profile.
        with_service: Whether the intake references a service.
    """

    async def _seed(
        service_type: str | None = "med_certs",
        answers: dict[str, Any] | None = None,
        with_patient: bool = True,
        with_service: bool = True,
    ) -> str:
        intake = Intake(
            id=uuid.uuid4(),
            created_at=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        )
        if with_service:
            intake.service = Service(
                slug="medical-certificate",
                name="Medical Certificate",
                type=service_type,
            )
        if with_patient:
            intake.patient = Profile(full_name="Alex Taylor", date_of_birth=date(1990, 5, 1))

        async with session_factory() as session:
            async with session.begin():
                session.add(intake)
                session.add(
                    IntakeAnswers(
                        intake=intake,
                        answers=default_answers() if answers is None else answers,
                    )
                )
        return str(intake.id)

    return _seed
