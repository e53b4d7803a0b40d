"""Idempotency guard for draft generation.

Generation is triggered on payment and may be re-triggered by retries or a
manual regenerate. The guard answers "is this intake already done?" from
the store and serialises concurrent triggers for the same intake inside
this process. Cross-process races are settled by the store's unique
(intake_id, artifact_type) key and atomic upsert: the last writer wins and
no duplicate rows appear.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from clinidraft.store import DraftStore

logger = structlog.get_logger(__name__)


class _LockEntry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0


class IdempotencyGuard:
    """Existence checks and per-intake serialisation.

    Attributes:
        store: Record store the checks run against.
    """

    def __init__(self, store: DraftStore) -> None:
        self.store = store
        self._locks: dict[str, _LockEntry] = {}
        self._logger = logger.bind(component="IdempotencyGuard")

    async def drafts_exist(self, intake_id: str) -> bool:
        """True only when every artifact type already has a draft."""
        return await self.store.drafts_exist(intake_id)

    async def delete_drafts(self, intake_id: str) -> None:
        """Remove all drafts of the intake in one atomic operation."""
        await self.store.delete_drafts(intake_id)
        self._logger.info("drafts_cleared", intake_id=intake_id)

    @asynccontextmanager
    async def lock(self, intake_id: str) -> AsyncIterator[None]:
        """Hold the intake's lock for the duration of the block.

        Entries are dropped once no task holds or waits on them, so the
        registry only ever contains intakes currently being processed.
        """
        entry = self._locks.get(intake_id)
        if entry is None:
            entry = self._locks[intake_id] = _LockEntry()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._locks.pop(intake_id, None)

    def active_intakes(self) -> list[str]:
        """Intake ids currently locked or waited on."""
        return sorted(self._locks)
