"""
Mixdown - render every contributing clip's audio into one PCM buffer.

Clips are decoded concurrently and summed into the master buffer. Mixing
is a plain linear sum: no normalization or limiting, so loud overlapping
material can clip.

Audio plays at 1x source speed: a clip contributes source seconds
[trim_start, trim_start + duration) regardless of its implied video speed.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import structlog

from packages.core.cancellation import AbortSignal
from packages.core.protocols import AudioDecoder
from packages.core.utils import sample_count, seconds_to_sample
from packages.timeline.models import Clip, Track

from .decoder import FfmpegAudioDecoder

logger = structlog.get_logger(__name__)

DEFAULT_SAMPLE_RATE = 48_000
DEFAULT_CHANNELS = 2
DEFAULT_MAX_CONCURRENCY = 4


@dataclass
class MixdownBuffer:
    """Mixed timeline audio."""

    samples: np.ndarray  # Shape: (num_frames, channels), float32
    sample_rate: int
    channels: int

    @property
    def num_frames(self) -> int:
        return len(self.samples)

    @property
    def duration(self) -> float:
        return self.num_frames / self.sample_rate

    @property
    def peak(self) -> float:
        """Largest absolute sample value (above 1.0 means clipping)."""
        if self.num_frames == 0:
            return 0.0
        return float(np.max(np.abs(self.samples)))

    def interleaved(self) -> np.ndarray:
        """Samples as one interleaved float32 vector."""
        return np.ascontiguousarray(self.samples, dtype=np.float32).reshape(-1)


def _match_channels(samples: np.ndarray, channels: int) -> np.ndarray:
    """Up/down-mix decoded audio to the master channel count."""
    if samples.ndim == 1:
        samples = samples.reshape(-1, 1)
    have = samples.shape[1]
    if have == channels:
        return samples
    if have == 1:
        return np.repeat(samples, channels, axis=1)
    if have > channels:
        return samples[:, :channels]
    padded = np.zeros((len(samples), channels), dtype=samples.dtype)
    padded[:, :have] = samples
    return padded


class AudioMixdownEngine:
    """
    Mix the audio of a timeline into a single buffer.

    Usage:
        engine = AudioMixdownEngine(sample_rate=48000, channels=2)
        buffer = await engine.mix(timeline.tracks, timeline.duration)
        if buffer is None:
            ...  # export silent video
    """

    def __init__(
        self,
        decoder: Optional[AudioDecoder] = None,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        """
        Initialize the mixdown engine.

        Args:
            decoder: Audio decoder (default: ffmpeg)
            sample_rate: Master sample rate in Hz
            channels: Master channel count
            max_concurrency: Clips decoded at the same time
        """
        self.decoder = decoder or FfmpegAudioDecoder()
        self.sample_rate = sample_rate
        self.channels = channels
        self.max_concurrency = max(1, max_concurrency)

    def contributing_clips(self, tracks: Sequence[Track]) -> List[Clip]:
        """Clips that may add audio: visible, unmuted, audio-capable, with an asset."""
        clips = []
        for track in tracks:
            if track.hidden or track.muted or not track.kind.may_carry_audio:
                continue
            for clip in track.clips:
                if clip.asset is None or not clip.asset.kind.may_carry_audio:
                    continue
                if clip.duration <= 0:
                    continue
                clips.append(clip)
        return clips

    async def _decode_clip(
        self, clip: Clip, semaphore: asyncio.Semaphore
    ) -> Optional[np.ndarray]:
        async with semaphore:
            try:
                samples = await self.decoder.decode(
                    clip.asset,
                    clip.trim_start,
                    clip.trim_start + clip.duration,
                    self.sample_rate,
                    self.channels,
                )
                if samples is None:
                    return None
                return _match_channels(np.asarray(samples, dtype=np.float32), self.channels)
            except Exception as e:
                logger.warning(
                    "mixdown.clip_skipped",
                    clip_id=clip.id,
                    asset_id=clip.asset.id,
                    error_type=type(e).__name__,
                    reason=str(e),
                )
                return None

    def _schedule(self, master: np.ndarray, clip: Clip, samples: np.ndarray) -> bool:
        """Add clip samples into the master buffer at the clip's start.

        Returns:
            True if any sample landed inside the timeline
        """
        samples = samples[: sample_count(clip.duration, self.sample_rate)]
        offset = seconds_to_sample(clip.start_time, self.sample_rate)

        skip = -offset if offset < 0 else 0
        dest_start = max(0, offset)
        dest_end = min(len(master), offset + len(samples))
        if dest_end <= dest_start:
            return False

        master[dest_start:dest_end] += samples[skip: skip + (dest_end - dest_start)]
        return True

    async def mix(
        self,
        tracks: Sequence[Track],
        duration: float,
        abort_signal: Optional[AbortSignal] = None,
    ) -> Optional[MixdownBuffer]:
        """
        Mix all contributing audio.

        Args:
            tracks: Timeline tracks
            duration: Timeline duration in seconds
            abort_signal: Polled once before decoding starts

        Returns:
            MixdownBuffer of ceil(duration * sample_rate) frames, or None when
            nothing was scheduled

        Raises:
            ExportCancelledError: If the signal is already tripped
        """
        if abort_signal is not None:
            abort_signal.throw_if_aborted()

        if duration <= 0:
            return None

        clips = self.contributing_clips(tracks)
        if not clips:
            logger.debug("mixdown.no_audio_clips")
            return None

        semaphore = asyncio.Semaphore(self.max_concurrency)
        decoded = await asyncio.gather(*(self._decode_clip(clip, semaphore) for clip in clips))

        master = np.zeros((sample_count(duration, self.sample_rate), self.channels), dtype=np.float32)
        scheduled: List[Tuple[str, int]] = []
        for clip, samples in zip(clips, decoded):
            if samples is None or len(samples) == 0:
                continue
            if self._schedule(master, clip, samples):
                scheduled.append((clip.id, len(samples)))

        if not scheduled:
            logger.info("mixdown.empty", clips=len(clips))
            return None

        buffer = MixdownBuffer(samples=master, sample_rate=self.sample_rate, channels=self.channels)
        logger.info(
            "mixdown.completed",
            clips=len(scheduled),
            frames=buffer.num_frames,
            peak=round(buffer.peak, 4),
        )
        return buffer


async def mix_timeline_audio(
    tracks: Sequence[Track],
    duration: float,
    decoder: Optional[AudioDecoder] = None,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channels: int = DEFAULT_CHANNELS,
    abort_signal: Optional[AbortSignal] = None,
) -> Optional[MixdownBuffer]:
    """
    Convenience function to mix timeline audio.

    Returns:
        MixdownBuffer, or None when the timeline has no audible audio
    """
    engine = AudioMixdownEngine(decoder=decoder, sample_rate=sample_rate, channels=channels)
    return await engine.mix(tracks, duration, abort_signal=abort_signal)
