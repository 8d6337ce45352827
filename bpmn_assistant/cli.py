"""CLI interface."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from bpmn_assistant.app_context import AppContext
from bpmn_assistant.tools.bpmn_repair import RepairPipeline
from bpmn_assistant.tools.bpmn_validator import validate_document
from bpmn_assistant.utils.config import ConfigurationError, load_settings
from bpmn_assistant.utils.logging_config import setup_logging

app = typer.Typer(add_completion=False)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to settings)."),
    port: Optional[int] = typer.Option(None, "--port", help="Port (defaults to settings)."),
):
    """Run the API server."""
    import uvicorn

    from bpmn_assistant.server import create_app

    settings = load_settings()
    try:
        api = create_app(settings=settings)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=1)
    uvicorn.run(api, host=host or settings.host, port=port or settings.port)


@app.command()
def validate(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="BPMN XML file."),
    repair: bool = typer.Option(False, "--repair", help="Run the sanitize/rebuild pipeline on failure."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the accepted document here."),
):
    """Validate a BPMN document and print the verdict as JSON."""
    text = path.read_text(encoding="utf-8")
    if repair:
        outcome = RepairPipeline().run(text)
        typer.echo(json.dumps(outcome.as_dict(), indent=2))
        if outcome.accepted and output is not None:
            output.write_text(outcome.document_text, encoding="utf-8")
        valid = outcome.accepted
    else:
        verdict = validate_document(text)
        typer.echo(json.dumps(verdict.as_dict(), indent=2))
        valid = verdict.valid
    if not valid:
        raise typer.Exit(code=1)


@app.command()
def providers():
    """List the configured AI providers."""
    settings = load_settings()
    setup_logging("WARNING")
    try:
        context = AppContext.build(settings)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=1)
    try:
        typer.echo(json.dumps(context.providers.describe(), indent=2))
    finally:
        context.close()


if __name__ == "__main__":
    app()
