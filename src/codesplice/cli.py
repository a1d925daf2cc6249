"""CLI commands for applying and checking structured edit batches."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from .config import DEFAULT_CONFIG_NAME, DEFAULT_CONFIG_TEMPLATE, EngineConfig, load_engine_config
from .orchestrator import BatchResult, EditOrchestrator, summarize_batch
from .router import detect_file_type, suggest_edit_kind
from .structured import FileEdit, ProjectFile, coerce_edit_batch, coerce_project_files
from .validator import ValidationReport, validate

APP_HELP = "Structured code-edit engine CLI."

app = typer.Typer(help=APP_HELP)


def _load_json(path: Path, label: str) -> Any:
    """Read a JSON document, exiting with a readable message on failure."""
    if not path.exists():
        raise typer.BadParameter(f"{label} file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as error:
        typer.echo(f"Failed to parse {label.lower()}: {error}")
        raise typer.Exit(code=1) from error


def load_config(config: Optional[str]) -> EngineConfig:
    """Load engine settings, exiting with a readable message when the file is malformed."""
    try:
        return load_engine_config(config)
    except yaml.YAMLError as error:
        typer.echo(f"Failed to parse config: {error}")
        raise typer.Exit(code=1) from error
    except ValueError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def load_snapshot(path: Path) -> Dict[str, ProjectFile]:
    try:
        return coerce_project_files(_load_json(path, "Snapshot"))
    except ValueError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def load_edits(path: Path) -> List[FileEdit]:
    try:
        return coerce_edit_batch(_load_json(path, "Edits"))
    except ValueError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def _dump_snapshot(files: Dict[str, ProjectFile]) -> Dict[str, Any]:
    return {name: entry.model_dump(by_alias=True) for name, entry in files.items()}


def _render_validation(report: ValidationReport) -> None:
    if report.valid:
        typer.echo("Validation: ok")
        return
    typer.echo(f"Validation: {len(report.errors)} error(s)")
    for line in report.error_summary().splitlines():
        typer.echo(f"  - {line}")


def _render_batch(result: BatchResult) -> None:
    if result.applied_file_names:
        typer.echo("Applied:")
        for name in result.applied_file_names:
            typer.echo(f"- {name}")
    else:
        typer.echo("No files changed.")
    if result.errors:
        typer.echo("Failures:")
        for failure in result.errors:
            typer.echo(f"- {failure.render()}")


@app.command()
def init(
    config: str = typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help="Path of the engine configuration file to create.",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration file."),
) -> None:
    """Write a default engine configuration file."""
    config_path = Path(config)
    if config_path.exists() and not force:
        typer.echo(f"Configuration already exists at {config_path}; use --force to overwrite.")
        raise typer.Exit(code=1)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(copy.deepcopy(DEFAULT_CONFIG_TEMPLATE), handle, sort_keys=False)
    typer.echo(f"Wrote {config_path}")


@app.command()
def apply(
    snapshot: Path = typer.Argument(..., help="JSON snapshot mapping file names to {content, type}."),
    edits: Path = typer.Argument(..., help="JSON edit batch (a list or {\"edits\": [...]})."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the updated snapshot here."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the engine configuration file.",
    ),
) -> None:
    """Apply an edit batch to a snapshot and validate the result."""
    engine_config = load_config(config)
    files = load_snapshot(snapshot)
    batch = load_edits(edits)

    typer.echo("Batch summary:")
    typer.echo(summarize_batch(batch))

    orchestrator = EditOrchestrator(config=engine_config)
    result = orchestrator.apply_edit_batch(files, batch)
    _render_batch(result)
    _render_validation(orchestrator.validate(result.updated_files))

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(_dump_snapshot(result.updated_files), indent=2) + "\n", encoding="utf-8")
        typer.echo(f"Wrote {output}")

    if result.errors:
        raise typer.Exit(code=1)


@app.command("validate")
def validate_command(
    snapshot: Path = typer.Argument(..., help="JSON snapshot mapping file names to {content, type}."),
) -> None:
    """Validate every file of a snapshot."""
    report = validate(load_snapshot(snapshot))
    _render_validation(report)
    if not report.valid:
        raise typer.Exit(code=1)


@app.command()
def summary(
    edits: Path = typer.Argument(..., help="JSON edit batch."),
) -> None:
    """Print the per-file summary of an edit batch."""
    typer.echo(summarize_batch(load_edits(edits)))


@app.command()
def suggest(
    paths: List[str] = typer.Argument(..., help="File names to classify."),
) -> None:
    """Suggest which edit kind an instruction generator should emit for each path."""
    for path in paths:
        typer.echo(f"{path}: {suggest_edit_kind(detect_file_type(path)).value}")


if __name__ == "__main__":
    app()
