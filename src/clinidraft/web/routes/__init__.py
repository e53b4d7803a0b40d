"""Route definitions for the Clinidraft API."""

from __future__ import annotations

from clinidraft.web.routes.drafts import create_drafts_router
from clinidraft.web.routes.health import (
    HealthResponse,
    ReadinessResponse,
    create_health_router,
)

__all__ = [
    "HealthResponse",
    "ReadinessResponse",
    "create_drafts_router",
    "create_health_router",
]
