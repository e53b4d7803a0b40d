"""HTTP API for triggering generation and reading drafts."""

from clinidraft.web.app import create_app

__all__ = ["create_app"]
