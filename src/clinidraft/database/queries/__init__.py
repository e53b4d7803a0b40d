"""Database query functions for Clinidraft.

This module provides async query functions for:
- Draft upsert, existence checks, bulk deletion and listing
- Intake loading with service, patient and answers
"""

from clinidraft.database.queries.draft import (
    count_artifact_types,
    delete_drafts,
    list_drafts,
    upsert_draft,
)
from clinidraft.database.queries.intake import get_intake

__all__ = [
    # Draft queries
    "upsert_draft",
    "list_drafts",
    "count_artifact_types",
    "delete_drafts",
    # Intake queries
    "get_intake",
]
