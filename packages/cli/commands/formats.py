"""List output formats."""

import asyncio

import typer

from packages.video import FfmpegCapabilities

from ..utils.display import console, print_formats


def formats(
    probe: bool = typer.Option(
        True, "--probe/--no-probe", help="Highlight codecs the local ffmpeg can encode"
    ),
) -> None:
    """List containers, MIME types and codecs.

    Example:
        localcut formats
        localcut formats --no-probe
    """
    available = None
    if probe:
        available = asyncio.run(FfmpegCapabilities().available_encoders())
        if not available:
            console.print("[yellow]Warning:[/] ffmpeg not found or reported no encoders")

    print_formats(available)
