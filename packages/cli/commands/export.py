"""Export a project to a media file."""

import asyncio
import signal
from pathlib import Path
from typing import Optional

import typer
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

from packages.core.cancellation import AbortSignal
from packages.core.config import get_config
from packages.core.errors import ExportCancelledError, LocalCutError, TimelineValidationError
from packages.timeline import Timeline, validate_timeline
from packages.video import ExportOptions, ExportResult, TimelineExporter

from ..utils.display import console, print_export_result, print_validation_errors
from ..utils.project import load_project


async def run_export(timeline: Timeline, options: ExportOptions) -> ExportResult:
    """Run an export, tripping the abort signal on Ctrl-C."""
    loop = asyncio.get_running_loop()
    handler_installed = False
    if options.abort_signal is not None:
        try:
            loop.add_signal_handler(signal.SIGINT, options.abort_signal.abort, "interrupted")
            handler_installed = True
        except (NotImplementedError, RuntimeError):
            # No loop signal handlers on Windows or outside the main thread
            handler_installed = False

    try:
        return await TimelineExporter().export(timeline, options)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


def export(
    project: Path = typer.Argument(..., help="Project JSON file"),
    output_dir: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output directory (default: LOCALCUT_EXPORTS_DIR)"
    ),
    width: Optional[int] = typer.Option(None, "--width", "-W", min=1, help="Output width"),
    height: Optional[int] = typer.Option(None, "--height", "-H", min=1, help="Output height"),
    fps: Optional[float] = typer.Option(None, "--fps", "-r", min=1, help="Frames per second"),
    container: Optional[str] = typer.Option(
        None, "--container", "-c", help="Preferred container: mp4, webm, mov, mkv"
    ),
    fit: str = typer.Option("contain", "--fit", help="Fit mode: contain, cover, fill"),
    background: str = typer.Option("#000000", "--background", "-b", help="Background color"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Output file base name"),
) -> None:
    """Export a timeline project to a video file.

    Example:
        localcut export project.json -o exports
        localcut export project.json --container webm --width 1280 --height 720
    """
    try:
        timeline = load_project(project)
        validate_timeline(timeline)
    except TimelineValidationError as e:
        print_validation_errors(e.validation_errors)
        raise typer.Exit(1)
    except LocalCutError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    abort_signal = AbortSignal()
    try:
        options = ExportOptions.from_config(
            width=width,
            height=height,
            fps=fps,
            container=container,
            fit_mode=fit,
            background_color=background,
            filename_base=name,
            abort_signal=abort_signal,
        )
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(f"Exporting {project.name}...", total=1.0)
        options.on_progress = lambda value: progress.update(task, completed=value)

        try:
            result = asyncio.run(run_export(timeline, options))
        except ExportCancelledError:
            console.print("[yellow]Export cancelled[/]")
            raise typer.Exit(130)
        except LocalCutError as e:
            console.print(f"[red]Export failed:[/] {e}")
            raise typer.Exit(1)

    path = result.save(output_dir or get_config().exports_dir)
    print_export_result(result, path)
