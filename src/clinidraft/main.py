"""Main CLI entry point for Clinidraft.

Usage:
    clinidraft generate <intake-id> [--force]
    clinidraft drafts <intake-id> [--format json]
    clinidraft serve --port 8000
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from clinidraft.cli import drafts as drafts_cli
from clinidraft.config import ClinidraftConfig, load_config
from clinidraft.database.connection import get_engine, get_session_factory
from clinidraft.logging import setup_logging

app = typer.Typer(
    name="clinidraft",
    help="Clinidraft: AI draft generation for clinical intake review",
    no_args_is_help=True,
)

app.command("generate")(drafts_cli.generate)
app.command("drafts")(drafts_cli.show)

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded configuration
        engine: Async SQLAlchemy engine
        session_factory: Factory for creating database sessions
    """

    def __init__(self, config: ClinidraftConfig):
        self.config = config
        self.engine = get_engine(config.database)
        self.session_factory = get_session_factory(self.engine)


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Return the context created by the CLI callback.

    Raises:
        RuntimeError: If the context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: ClinidraftConfig) -> AppContext:
    """Create and store the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default from config)"),
    ] = None,
) -> None:
    """Start the Clinidraft HTTP API."""
    import uvicorn

    from clinidraft.web.app import create_app

    config = get_app_context().config
    bind_host = host or config.web.host
    bind_port = port or config.web.port

    console.print("[bold cyan]Starting Clinidraft API[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {bind_host}")
    console.print(f"[dim]Port:[/dim] {bind_port}")
    console.print(f"[dim]Model:[/dim] {config.model.model}")
    console.print()

    uvicorn.run(
        create_app(config),
        host=bind_host,
        port=bind_port,
        log_level="info",
    )


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, set up logging and create the application context."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    setup_logging(logging_config)

    try:
        initialize_context(config)
    except Exception as e:
        console.print(f"[red]Error initializing application:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
