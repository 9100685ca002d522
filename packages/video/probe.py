"""
Probe - read media metadata with ffprobe.
"""

import json
import subprocess
from pathlib import Path
from typing import Dict, Optional, Union

import structlog

from packages.core.config import get_config
from packages.core.errors import SourceLoadError
from packages.core.types import MediaKind
from packages.timeline.models import Asset

logger = structlog.get_logger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".webp", ".tif", ".tiff", ".gif"}

# ffprobe reports stills through these demuxers
_IMAGE_FORMATS = {"image2", "png_pipe", "jpeg_pipe", "bmp_pipe", "webp_pipe", "tiff_pipe"}


def _parse_rate(value: Optional[str]) -> Optional[float]:
    """Parse an ffprobe rate such as "30000/1001"."""
    if not value:
        return None
    if "/" in value:
        num, den = value.split("/", 1)
        try:
            num_f, den_f = float(num), float(den)
        except ValueError:
            return None
        return num_f / den_f if den_f else None
    try:
        return float(value)
    except ValueError:
        return None


def run_ffprobe(path: Path, ffprobe_bin: Optional[str] = None) -> Dict:
    """
    Run ffprobe and return its JSON report.

    Raises:
        SourceLoadError: If ffprobe is missing, fails, or prints bad JSON
    """
    ffprobe_bin = ffprobe_bin or get_config().ffprobe_bin
    cmd = [
        ffprobe_bin,
        "-v", "error",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]

    try:
        result = subprocess.run(cmd, capture_output=True)
    except (FileNotFoundError, PermissionError) as e:
        raise SourceLoadError(path.name, f"cannot run ffprobe: {e}") from e

    if result.returncode != 0:
        reason = result.stderr.decode(errors="replace").strip() or "ffprobe failed"
        raise SourceLoadError(path.name, reason)

    try:
        return json.loads(result.stdout.decode(errors="replace") or "{}")
    except json.JSONDecodeError as e:
        raise SourceLoadError(path.name, f"unreadable ffprobe output: {e}") from e


def asset_from_probe(
    report: Dict,
    path: Union[str, Path],
    asset_id: Optional[str] = None,
) -> Asset:
    """Build an Asset from an ffprobe JSON report."""
    path = Path(path)
    streams = report.get("streams", [])
    fmt = report.get("format", {})

    video = next(
        (
            s for s in streams
            if s.get("codec_type") == "video"
            and not s.get("disposition", {}).get("attached_pic")
        ),
        None,
    )
    audio = next((s for s in streams if s.get("codec_type") == "audio"), None)

    format_names = set((fmt.get("format_name") or "").split(","))
    if video is not None and (
        format_names & _IMAGE_FORMATS or path.suffix.lower() in IMAGE_EXTENSIONS
    ):
        kind = MediaKind.IMAGE
    elif video is not None:
        kind = MediaKind.VIDEO
    elif audio is not None:
        kind = MediaKind.AUDIO
    else:
        raise SourceLoadError(asset_id or path.name, "no audio or video streams")

    duration = 0.0
    if kind != MediaKind.IMAGE:
        duration = float(fmt.get("duration") or (video or audio).get("duration") or 0.0)

    return Asset(
        id=asset_id or path.stem,
        kind=kind,
        path=path,
        duration=duration,
        width=int(video["width"]) if video and video.get("width") else None,
        height=int(video["height"]) if video and video.get("height") else None,
        frame_rate=_parse_rate(video.get("avg_frame_rate") or video.get("r_frame_rate")) if video else None,
        sample_rate=int(audio["sample_rate"]) if audio and audio.get("sample_rate") else None,
        channels=int(audio["channels"]) if audio and audio.get("channels") else None,
        has_audio=audio is not None and kind != MediaKind.IMAGE,
    )


def probe_asset(
    path: Union[str, Path],
    asset_id: Optional[str] = None,
    ffprobe_bin: Optional[str] = None,
) -> Asset:
    """
    Probe a media file into an Asset.

    Args:
        path: Media file
        asset_id: Id for the asset (default: file stem)
        ffprobe_bin: ffprobe executable (default from config)

    Returns:
        Asset with kind, duration, size, frame rate and audio layout filled in

    Raises:
        SourceLoadError: If the file is missing or cannot be probed
    """
    path = Path(path)
    if not path.exists():
        raise SourceLoadError(asset_id or path.name, f"file not found: {path}")

    report = run_ffprobe(path, ffprobe_bin)
    asset = asset_from_probe(report, path, asset_id)
    logger.debug(
        "probe.completed",
        asset_id=asset.id,
        kind=asset.kind.value,
        duration=asset.duration,
        has_audio=asset.has_audio,
    )
    return asset
