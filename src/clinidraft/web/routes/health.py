"""Liveness and readiness endpoints.

``/health/`` answers as long as the process is up. ``/health/ready``
checks the draft store's database and reports what a trigger would run
against: the configured model, the eligible service types, and how many
intakes are generating right now.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import text

from clinidraft.logging import get_logger

if TYPE_CHECKING:
    from clinidraft.config import ClinidraftConfig
    from clinidraft.generation.orchestrator import DraftOrchestrator

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str


class ReadinessResponse(BaseModel):
    """Readiness response.

    Attributes:
        status: "ok", or "unhealthy" when the draft database is unreachable
        database: "connected" or "disconnected"
        model: Model name sent to the chat completions endpoint
        eligible_service_types: Service types that get drafts
        active_generations: Intakes holding or waiting on a generation lock
    """

    status: str
    database: str
    model: str
    eligible_service_types: list[str]
    active_generations: int


async def check_database(request: Request) -> bool:
    """Run ``SELECT 1`` through the app's session factory."""
    try:
        async with request.app.state.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("readiness_check_failed", database="disconnected", error=str(exc))
        return False
    return True


def create_health_router() -> APIRouter:
    """Create the ``/health`` router."""
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=HealthResponse)
    async def health() -> dict[str, Any]:
        return {"status": "ok"}

    @router.get("/ready", response_model=ReadinessResponse)
    async def readiness(request: Request) -> dict[str, Any]:
        config: ClinidraftConfig = request.app.state.config
        orchestrator: DraftOrchestrator | None = getattr(
            request.app.state, "orchestrator", None
        )
        connected = await check_database(request)
        active = orchestrator.guard.active_intakes() if orchestrator is not None else []

        report = {
            "status": "ok" if connected else "unhealthy",
            "database": "connected" if connected else "disconnected",
            "model": config.model.model,
            "eligible_service_types": config.generation.eligible_service_types,
            "active_generations": len(active),
        }
        if connected:
            logger.debug("readiness_check_passed", active_generations=len(active))
        return report

    return router
