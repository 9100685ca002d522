"""Inspect and validate projects."""

from pathlib import Path

import typer

from packages.core.errors import LocalCutError, TimelineValidationError
from packages.timeline import validate_timeline

from ..utils.display import console, print_timeline, print_validation_errors
from ..utils.project import load_project


def info(
    project: Path = typer.Argument(..., help="Project JSON file"),
    probe: bool = typer.Option(
        True, "--probe/--no-probe", help="Probe assets with missing metadata"
    ),
) -> None:
    """Show the tracks, clips and duration of a project.

    Example:
        localcut info project.json
    """
    try:
        timeline = load_project(project, probe_missing=probe)
    except LocalCutError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    print_timeline(timeline)


def validate(
    project: Path = typer.Argument(..., help="Project JSON file"),
    probe: bool = typer.Option(
        True, "--probe/--no-probe", help="Probe assets with missing metadata"
    ),
) -> None:
    """Check a project for overlapping clips and invalid trims.

    Example:
        localcut validate project.json
    """
    try:
        timeline = load_project(project, probe_missing=probe)
        validate_timeline(timeline)
    except TimelineValidationError as e:
        print_validation_errors(e.validation_errors)
        raise typer.Exit(1)
    except LocalCutError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    console.print(
        f"[green]Timeline is valid[/] ({len(timeline.tracks)} tracks, {timeline.clip_count} clips)"
    )
