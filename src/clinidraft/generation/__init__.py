"""Draft generation: context, model calls, parsing, validation and orchestration."""

from clinidraft.generation.guard import IdempotencyGuard
from clinidraft.generation.model import (
    ChatCompletionClient,
    LanguageModel,
    ModelAPIError,
    ModelClientError,
    ModelConnectionError,
    ModelResponse,
    ModelTimeoutError,
    TokenUsage,
)
from clinidraft.generation.orchestrator import (
    ArtifactStatus,
    DraftOrchestrator,
    GenerateDraftsResult,
)
from clinidraft.generation.pipeline import ArtifactOutcome, ArtifactPipeline, build_pipelines

__all__ = [
    "ArtifactOutcome",
    "ArtifactPipeline",
    "ArtifactStatus",
    "ChatCompletionClient",
    "DraftOrchestrator",
    "GenerateDraftsResult",
    "IdempotencyGuard",
    "LanguageModel",
    "ModelAPIError",
    "ModelClientError",
    "ModelConnectionError",
    "ModelResponse",
    "ModelTimeoutError",
    "TokenUsage",
    "build_pipelines",
]
