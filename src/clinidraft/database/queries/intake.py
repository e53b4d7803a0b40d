"""Intake query functions for Clinidraft.

Intakes are read-only here; the service, patient and answers relationships
are eager-loaded (selectin) so callers can use them outside the session.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinidraft.database.models.intake import Intake


async def get_intake(
    session: AsyncSession,
    intake_id: UUID,
) -> Intake | None:
    """Retrieve an intake with its service, patient and answers.

    Args:
        session: Active async database session.
        intake_id: UUID of the intake.

    Returns:
        The Intake if found, None otherwise.
    """
    stmt = select(Intake).where(Intake.id == intake_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
