"""
Decoder - read a window of an asset's audio as float PCM using ffmpeg.
"""

import asyncio
from typing import Optional

import numpy as np
import structlog

from packages.core.config import get_config
from packages.core.errors import SourceDecodeError
from packages.timeline.models import Asset

logger = structlog.get_logger(__name__)

# ffmpeg stderr fragments meaning the input has no audio stream to map
NO_AUDIO_MARKERS = (
    "does not contain any stream",
    "matches no streams",
)


def _reports_no_audio(stderr: str) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in NO_AUDIO_MARKERS)


class FfmpegAudioDecoder:
    """Decode asset audio through an ffmpeg subprocess.

    Each call spawns one ffmpeg process that seeks to the window start and
    writes interleaved little-endian float32 PCM to stdout, resampled and
    remixed to the requested rate and channel count.
    """

    def __init__(self, ffmpeg_bin: Optional[str] = None):
        self.ffmpeg_bin = ffmpeg_bin or get_config().ffmpeg_bin

    def _build_command(
        self,
        asset: Asset,
        start: float,
        duration: float,
        sample_rate: int,
        channels: int,
    ) -> list:
        return [
            self.ffmpeg_bin,
            "-hide_banner",
            "-loglevel", "error",
            "-ss", f"{start:.6f}",
            "-t", f"{duration:.6f}",
            "-i", str(asset.path),
            "-vn",
            "-f", "f32le",
            "-acodec", "pcm_f32le",
            "-ac", str(channels),
            "-ar", str(sample_rate),
            "-",
        ]

    async def decode(
        self,
        asset: Asset,
        start: float,
        end: float,
        sample_rate: int,
        channels: int,
    ) -> Optional[np.ndarray]:
        """
        Decode source audio in [start, end).

        Args:
            asset: Asset to read
            start: Window start in source seconds
            end: Window end in source seconds
            sample_rate: Output sample rate
            channels: Output channel count

        Returns:
            float32 array of shape (frames, channels), or None if the asset
            carries no audio. Assets whose audio is unknown are decoded and
            resolve to None when ffmpeg finds no audio stream.

        Raises:
            SourceDecodeError: If ffmpeg is missing or fails
        """
        if asset.has_audio is False:
            return None

        duration = end - start
        if duration <= 0:
            return np.zeros((0, channels), dtype=np.float32)

        cmd = self._build_command(asset, max(0.0, start), duration, sample_rate, channels)
        logger.debug("audio_decoder.spawn", asset_id=asset.id, start=start, end=end)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise SourceDecodeError(asset.id, f"cannot run ffmpeg: {e}") from e

        stdout, stderr = await process.communicate()

        if process.returncode != 0:
            reason = stderr.decode(errors="replace").strip() or f"ffmpeg exited with {process.returncode}"
            if asset.has_audio is None and _reports_no_audio(reason):
                logger.debug("audio_decoder.no_audio_stream", asset_id=asset.id)
                return None
            raise SourceDecodeError(asset.id, reason, timestamp=start)

        if not stdout and asset.has_audio is None:
            logger.debug("audio_decoder.no_audio_stream", asset_id=asset.id)
            return None

        samples = np.frombuffer(stdout, dtype="<f4")
        usable = len(samples) - (len(samples) % channels)
        return samples[:usable].reshape(-1, channels).astype(np.float32, copy=True)
