"""Typer CLI: analyze an artifact photo and list supported object types."""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from nusascan.core.config import get_config
from nusascan.core.io_utils import require_image
from nusascan.core.logging import setup_logging
from nusascan.errors import AnalysisTimeoutError, InputError
from nusascan.knowledge import get_knowledge_search
from nusascan.pipeline.orchestrator import AnalysisOrchestrator, analyze_with_deadline
from nusascan.pipeline.schema import AnalysisReport, Stage
from nusascan.pipeline.streaming import StreamingProgressReporter

app = typer.Typer(no_args_is_help=True)

EXIT_INPUT_ERROR = 1
EXIT_TIMEOUT = 2


def _get_orchestrator() -> AnalysisOrchestrator:
    return AnalysisOrchestrator.from_settings(get_config())


def _print_report(report: AnalysisReport) -> None:
    typer.echo(json.dumps(report.model_dump(mode="json"), indent=2, ensure_ascii=False))


async def _stream(orchestrator: AnalysisOrchestrator, image: Path) -> AnalysisReport | None:
    report = None
    async for event in StreamingProgressReporter(orchestrator).stream(image):
        if event.stage == Stage.error:
            typer.secho(f"[{event.progress:3d}%] error: {event.error}", fg=typer.colors.RED, err=True)
        else:
            typer.echo(f"[{event.progress:3d}%] {event.stage.value}: {event.message}", err=True)
        if event.report is not None:
            report = event.report
    return report


@app.command("analyze")
def analyze(
    image: Path = typer.Argument(..., help="Path to the artifact photo"),
    timeout: float | None = typer.Option(None, "--timeout", help="Deadline in seconds (default from config)"),
    stream: bool = typer.Option(False, "--stream", help="Print stage progress while analyzing (no deadline)"),
    config: Path | None = typer.Option(None, "--config", help="Path to nusascan.yml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging to stderr"),
) -> None:
    """Analyze one image and print the cultural report as JSON."""
    cfg = get_config(config) if config is not None else get_config()
    setup_logging("DEBUG" if verbose else None)
    orchestrator = _get_orchestrator()
    if stream:
        report = asyncio.run(_stream(orchestrator, image))
        if report is None:
            raise typer.Exit(EXIT_INPUT_ERROR)
        _print_report(report)
        return
    try:
        require_image(image)
        deadline = timeout if timeout is not None else cfg.analysis_timeout_seconds
        report = asyncio.run(analyze_with_deadline(orchestrator, image, timeout_seconds=deadline))
    except InputError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_INPUT_ERROR)
    except AnalysisTimeoutError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_TIMEOUT)
    _print_report(report)


@app.command("supported-types")
def supported_types() -> None:
    """List the artifact categories the knowledge base covers."""
    search = get_knowledge_search(get_config().search_backend, get_config())
    table = Table(title="Supported cultural object types")
    table.add_column("Category")
    table.add_column("Name")
    table.add_column("Origin")
    for key in search.keys:
        info = search.find(key)
        table.add_row(key, info.name or "-", info.origin or "-")
    Console().print(table)


if __name__ == "__main__":
    app()
