"""Rich display utilities for CLI output."""

from pathlib import Path
from typing import FrozenSet, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from packages.core.types import MediaKind
from packages.core.utils import format_duration
from packages.timeline import Timeline
from packages.video import ExportResult, OutputContainer
from packages.video.codecs import AUDIO_ENCODERS, VIDEO_ENCODERS

console = Console()


def kind_color(kind: MediaKind) -> str:
    """Get color for a media kind."""
    colors = {
        MediaKind.VIDEO: "cyan",
        MediaKind.AUDIO: "magenta",
        MediaKind.IMAGE: "green",
    }
    return colors.get(kind, "white")


def print_timeline(timeline: Timeline) -> None:
    """Print tracks and clips of a timeline."""
    table = Table(title="Timeline")
    table.add_column("Track", style="bold")
    table.add_column("Kind")
    table.add_column("Clip")
    table.add_column("Asset")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Trim", justify="right")

    for track in timeline.tracks:
        flags = []
        if track.hidden:
            flags.append("hidden")
        if track.muted:
            flags.append("muted")
        label = track.label or track.id
        if flags:
            label = f"{label} [dim]({', '.join(flags)})[/]"
        kind = f"[{kind_color(track.kind)}]{track.kind.value}[/]"

        if not track.clips:
            table.add_row(label, kind, "[dim]-[/]", "", "", "", "")
            continue

        for i, clip in enumerate(track.clips):
            table.add_row(
                label if i == 0 else "",
                kind if i == 0 else "",
                clip.name or clip.id,
                clip.asset.name if clip.asset else "[red]missing[/]",
                f"{clip.start_time:.2f}",
                f"{clip.end_time:.2f}",
                f"{clip.trim_start:.2f}-{clip.trim_end:.2f}",
            )

    console.print(table)
    console.print(
        f"[bold]Duration:[/] {format_duration(timeline.duration)}  "
        f"[bold]Tracks:[/] {len(timeline.tracks)}  "
        f"[bold]Clips:[/] {timeline.clip_count}"
    )


def print_validation_errors(errors: list) -> None:
    """Print timeline validation problems."""
    console.print(f"[red]Timeline has {len(errors)} problem(s):[/]")
    for error in errors:
        console.print(f"  [red]-[/] {error}")


def print_export_result(result: ExportResult, path: Path) -> None:
    """Print a summary of a finished export."""
    lines = [
        f"[dim]File:[/] {path}",
        f"[dim]Type:[/] {result.mime_type}",
        f"[dim]Size:[/] {result.size / 1024:.1f} KiB",
    ]
    meta = result.metadata
    if meta.get("video_codec"):
        lines.append(f"[dim]Video:[/] {meta['video_codec']}")
    lines.append(f"[dim]Audio:[/] {meta.get('audio_codec') or 'none'}")
    console.print(Panel("\n".join(lines), title="[green]Export complete[/]", expand=False))


def _codec_cell(name: str, encoders: tuple, available: Optional[FrozenSet[str]]) -> str:
    if available is None:
        return name
    if any(encoder in available for encoder in encoders):
        return f"[green]{name}[/]"
    return f"[dim]{name}[/]"


def print_formats(available: Optional[FrozenSet[str]] = None) -> None:
    """Print containers with their codecs.

    Args:
        available: ffmpeg encoder names; when given, encodable codecs are
            highlighted and the rest dimmed
    """
    table = Table(title="Output Formats")
    table.add_column("Container", style="bold")
    table.add_column("MIME type")
    table.add_column("Video codecs")
    table.add_column("Audio codecs")

    for container in OutputContainer:
        video = ", ".join(
            _codec_cell(c.value, VIDEO_ENCODERS[c], available) for c in container.video_codecs
        ) or "[dim]-[/]"
        audio = ", ".join(
            _codec_cell(c.value, AUDIO_ENCODERS[c], available) for c in container.audio_codecs
        )
        table.add_row(container.value, container.mime_type, video, audio)

    console.print(table)
