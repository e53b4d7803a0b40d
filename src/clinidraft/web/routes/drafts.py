"""Draft generation and retrieval endpoints.

Routes:
    POST /intakes/{intake_id}/drafts?force=  run the orchestrator
    GET  /intakes/{intake_id}/drafts         stored drafts for review
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from clinidraft.generation.orchestrator import (
    INTAKE_NOT_FOUND,
    DraftOrchestrator,
    GenerateDraftsResult,
)
from clinidraft.store import DraftRecord, DraftStore

logger = structlog.get_logger(__name__)


def get_orchestrator(request: Request) -> DraftOrchestrator:
    """Orchestrator created by the application lifespan."""
    return request.app.state.orchestrator


def get_store(request: Request) -> DraftStore:
    """Draft store created by the application lifespan."""
    return request.app.state.store


def create_drafts_router() -> APIRouter:
    """Create the ``/intakes/{intake_id}/drafts`` router."""
    router = APIRouter(prefix="/intakes", tags=["drafts"])

    @router.post("/{intake_id}/drafts", response_model=GenerateDraftsResult)
    async def generate_drafts_endpoint(
        intake_id: str,
        force: bool = False,
        orchestrator: DraftOrchestrator = Depends(get_orchestrator),  # noqa: B008
    ) -> Any:
        """Generate drafts for an intake.

        Responds 404 with the result body when the intake does not exist;
        every other outcome (including per-artifact failures) is 200.
        """
        result = await orchestrator.generate_drafts(intake_id, force=force)
        if not result.success and result.error == INTAKE_NOT_FOUND:
            return JSONResponse(
                status_code=404,
                content=result.model_dump(mode="json", by_alias=True),
            )
        return result

    @router.get("/{intake_id}/drafts", response_model=list[DraftRecord])
    async def list_drafts_endpoint(
        intake_id: str,
        store: DraftStore = Depends(get_store),  # noqa: B008
    ) -> list[DraftRecord]:
        drafts = await store.get_drafts(intake_id)
        logger.info("drafts_listed", intake_id=intake_id, count=len(drafts))
        return drafts

    return router
