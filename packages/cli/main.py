"""localcut CLI - Export multi-track timelines to video files.

Usage:
    localcut <command> [options]

Commands:
    export      Render and encode a project
    info        Show tracks, clips and duration
    validate    Check a project for timeline problems
    formats     List containers and codecs
"""

import typer

from packages.core.config import LogLevel, get_config
from packages.core.observability import configure_logging

from . import __version__
from .commands.export import export
from .commands.formats import formats
from .commands.inspect import info, validate
from .utils.display import console

# Create the main app
app = typer.Typer(
    name="localcut",
    help="localcut CLI - Timeline export tools",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"localcut v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """localcut CLI - Export multi-track timelines to video files."""
    configure_logging(LogLevel.DEBUG if verbose or get_config().debug else LogLevel.WARNING)


# Register commands
app.command("export")(export)
app.command("info")(info)
app.command("validate")(validate)
app.command("formats")(formats)


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
