"""Draft CLI commands.

``generate`` runs the orchestrator for one intake against the configured
database and model; ``drafts`` shows what is stored for an intake.
"""

from __future__ import annotations

import asyncio
import json
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from clinidraft.database.models.draft import DraftStatus
from clinidraft.generation.model import ChatCompletionClient
from clinidraft.generation.orchestrator import DraftOrchestrator, GenerateDraftsResult
from clinidraft.store import DraftRecord, SqlDraftStore

console = Console()

STATUS_COLORS = {
    DraftStatus.ready: "green",
    DraftStatus.failed: "red",
}


def generate(
    intake_id: Annotated[str, typer.Argument(help="Intake UUID")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Delete existing drafts and regenerate"),
    ] = False,
) -> None:
    """Generate the clinical note and certificate drafts for an intake."""
    from clinidraft.main import get_app_context

    ctx = get_app_context()

    async def _generate() -> GenerateDraftsResult:
        store = SqlDraftStore(ctx.session_factory)
        try:
            async with ChatCompletionClient(ctx.config.model) as model:
                orchestrator = DraftOrchestrator(store, model, ctx.config.generation)
                return await orchestrator.generate_drafts(intake_id, force=force)
        finally:
            await ctx.engine.dispose()

    try:
        result = asyncio.run(_generate())
    except Exception as e:
        console.print(f"[red]Error generating drafts:[/red] {e}")
        raise typer.Exit(code=1)

    if not result.success:
        console.print(f"[red]Generation failed:[/red] {result.error}")
        raise typer.Exit(code=1)

    if result.skipped:
        console.print(f"[yellow]Skipped[/yellow] intake {intake_id} (drafts exist or service not eligible)")
        return

    lines = []
    for label, artifact in (("Clinical note", result.clinical_note), ("Med cert", result.med_cert)):
        if artifact is None:
            continue
        color = STATUS_COLORS.get(artifact.status, "white")
        line = f"[bold]{label}:[/bold] [{color}]{artifact.status.value}[/{color}]"
        if artifact.error:
            line += f" [dim]({artifact.error})[/dim]"
        lines.append(line)

    all_ready = all(
        a is not None and a.status == DraftStatus.ready
        for a in (result.clinical_note, result.med_cert)
    )
    console.print(
        Panel(
            "\n".join(lines),
            title=f"Drafts for {intake_id}",
            border_style="green" if all_ready else "yellow",
        )
    )


def show(
    intake_id: Annotated[str, typer.Argument(help="Intake UUID")],
    format: Annotated[
        str,
        typer.Option("--format", "-F", help="Output format (table or json)"),
    ] = "table",
) -> None:
    """Show stored drafts for an intake."""
    from clinidraft.main import get_app_context

    if format not in ("table", "json"):
        console.print(f"[red]Invalid format:[/red] {format}. Valid values: table, json")
        raise typer.Exit(code=1)

    ctx = get_app_context()

    async def _list() -> list[DraftRecord]:
        try:
            return await SqlDraftStore(ctx.session_factory).get_drafts(intake_id)
        finally:
            await ctx.engine.dispose()

    try:
        drafts = asyncio.run(_list())
    except Exception as e:
        console.print(f"[red]Error listing drafts:[/red] {e}")
        raise typer.Exit(code=1)

    if format == "json":
        console.print_json(json.dumps([d.model_dump(mode="json") for d in drafts]))
        return

    if not drafts:
        console.print("[yellow]No drafts found[/yellow]")
        return

    table = Table(title=f"Drafts for {intake_id}")
    table.add_column("Artifact", style="cyan")
    table.add_column("Status")
    table.add_column("Error", style="dim", overflow="fold")
    table.add_column("Tokens (in/out)", justify="right", style="dim")
    table.add_column("Duration (ms)", justify="right", style="dim")
    table.add_column("Updated", style="dim")

    for d in drafts:
        color = STATUS_COLORS.get(d.status, "white")
        tokens = f"{d.prompt_tokens if d.prompt_tokens is not None else '-'}/" + (
            f"{d.completion_tokens if d.completion_tokens is not None else '-'}"
        )
        table.add_row(
            d.artifact_type.value,
            f"[{color}]{d.status.value}[/{color}]",
            d.error or "",
            tokens,
            str(d.generation_duration_ms) if d.generation_duration_ms is not None else "-",
            d.updated_at.isoformat() if d.updated_at else "-",
        )

    console.print(table)
