"""
Codecs - probe what ffmpeg can encode and negotiate an output format.
"""

import asyncio
from dataclasses import dataclass
from typing import FrozenSet, Optional, Sequence, Union

import structlog

from packages.core.config import get_config
from packages.core.errors import NoEncodableFormatError
from packages.core.protocols import EncoderProbe

from .formats import (
    DEFAULT_CONTAINER_ORDER,
    AudioCodec,
    OutputContainer,
    VideoCodec,
    parse_container,
)

logger = structlog.get_logger(__name__)

# Probe settings used when checking encodability
VIDEO_PROBE_BITRATE = 8e6
AUDIO_PROBE_CHANNELS = 2
AUDIO_PROBE_SAMPLE_RATE = 48_000
AUDIO_PROBE_BITRATE = 192e3

MIN_DIMENSION = 16
MAX_DIMENSION = 16384

# ffmpeg encoder names per codec, best first
VIDEO_ENCODERS = {
    VideoCodec.AVC: ("libx264", "h264_nvenc", "h264_videotoolbox", "h264_vaapi"),
    VideoCodec.HEVC: ("libx265", "hevc_nvenc", "hevc_videotoolbox", "hevc_vaapi"),
    VideoCodec.VP8: ("libvpx",),
    VideoCodec.VP9: ("libvpx-vp9",),
    VideoCodec.AV1: ("libsvtav1", "libaom-av1", "av1_nvenc"),
}

AUDIO_ENCODERS = {
    AudioCodec.AAC: ("aac", "libfdk_aac"),
    AudioCodec.OPUS: ("libopus", "opus"),
    AudioCodec.MP3: ("libmp3lame",),
    AudioCodec.VORBIS: ("libvorbis", "vorbis"),
    AudioCodec.FLAC: ("flac",),
    AudioCodec.PCM_S16: ("pcm_s16le",),
    AudioCodec.PCM_F32: ("pcm_f32le",),
}

# 4:2:0 chroma subsampling in these encoders needs even frame sizes
_EVEN_DIMENSION_CODECS = {VideoCodec.AVC, VideoCodec.HEVC}

_AUDIO_SAMPLE_RATES = {
    AudioCodec.OPUS: {8000, 12000, 16000, 24000, 48000},
    AudioCodec.MP3: {8000, 11025, 12000, 16000, 22050, 24000, 32000, 44100, 48000},
    AudioCodec.AAC: {
        8000, 11025, 12000, 16000, 22050, 24000, 32000, 44100, 48000, 64000, 88200, 96000,
    },
}

_AUDIO_MAX_CHANNELS = {
    AudioCodec.MP3: 2,
    AudioCodec.VORBIS: 8,
    AudioCodec.OPUS: 8,
    AudioCodec.AAC: 8,
    AudioCodec.FLAC: 8,
}


def parse_encoder_list(output: str) -> FrozenSet[str]:
    """
    Parse the encoder names out of `ffmpeg -encoders` output.

    The listing starts after a " ------" separator; each entry is a flags
    column followed by the encoder name.
    """
    names = set()
    in_listing = False
    for line in output.splitlines():
        stripped = line.strip()
        if not in_listing:
            if stripped.startswith("------"):
                in_listing = True
            continue
        parts = stripped.split()
        if len(parts) >= 2:
            names.add(parts[1])
    return frozenset(names)


class FfmpegCapabilities:
    """Encoder availability as reported by the local ffmpeg build."""

    def __init__(self, ffmpeg_bin: Optional[str] = None):
        self.ffmpeg_bin = ffmpeg_bin or get_config().ffmpeg_bin
        self._encoders: Optional[FrozenSet[str]] = None
        self._lock = asyncio.Lock()

    async def available_encoders(self) -> FrozenSet[str]:
        """Encoder names ffmpeg reports (cached after the first probe).

        A missing or failing ffmpeg yields an empty set.
        """
        async with self._lock:
            if self._encoders is None:
                self._encoders = await self._probe()
        return self._encoders

    async def _probe(self) -> FrozenSet[str]:
        try:
            process = await asyncio.create_subprocess_exec(
                self.ffmpeg_bin, "-hide_banner", "-encoders",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.warning("codecs.ffmpeg_missing", ffmpeg=self.ffmpeg_bin, reason=str(e))
            return frozenset()

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            logger.warning(
                "codecs.probe_failed",
                returncode=process.returncode,
                stderr=stderr.decode(errors="replace").strip(),
            )
            return frozenset()

        encoders = parse_encoder_list(stdout.decode(errors="replace"))
        logger.debug("codecs.probed", encoders=len(encoders))
        return encoders

    async def video_encoder(self, codec: Union[VideoCodec, str]) -> Optional[str]:
        """Best available ffmpeg encoder for a video codec."""
        available = await self.available_encoders()
        for name in VIDEO_ENCODERS[VideoCodec(codec)]:
            if name in available:
                return name
        return None

    async def audio_encoder(self, codec: Union[AudioCodec, str]) -> Optional[str]:
        """Best available ffmpeg encoder for an audio codec."""
        available = await self.available_encoders()
        for name in AUDIO_ENCODERS[AudioCodec(codec)]:
            if name in available:
                return name
        return None

    async def can_encode_video(
        self, codec: Union[VideoCodec, str], width: int, height: int, bitrate: float
    ) -> bool:
        codec = VideoCodec(codec)
        if not (MIN_DIMENSION <= width <= MAX_DIMENSION and MIN_DIMENSION <= height <= MAX_DIMENSION):
            return False
        if codec in _EVEN_DIMENSION_CODECS and (width % 2 or height % 2):
            return False
        if bitrate <= 0:
            return False
        return await self.video_encoder(codec) is not None

    async def can_encode_audio(
        self, codec: Union[AudioCodec, str], channels: int, sample_rate: int, bitrate: float
    ) -> bool:
        codec = AudioCodec(codec)
        if channels <= 0 or channels > _AUDIO_MAX_CHANNELS.get(codec, 32):
            return False
        rates = _AUDIO_SAMPLE_RATES.get(codec)
        if rates is not None and sample_rate not in rates:
            return False
        if bitrate <= 0:
            return False
        return await self.audio_encoder(codec) is not None


@dataclass(frozen=True)
class CodecSelection:
    """Negotiated output format."""
    container: OutputContainer
    video_codec: VideoCodec
    audio_codec: Optional[AudioCodec] = None

    @property
    def has_audio(self) -> bool:
        return self.audio_codec is not None


async def first_encodable_video_codec(
    probe: EncoderProbe,
    codecs: Sequence[VideoCodec],
    width: int,
    height: int,
    bitrate: float = VIDEO_PROBE_BITRATE,
) -> Optional[VideoCodec]:
    """First codec in the list the probe can encode at the target size."""
    for codec in codecs:
        if await probe.can_encode_video(codec.value, width, height, bitrate):
            return codec
    return None


async def first_encodable_audio_codec(
    probe: EncoderProbe,
    codecs: Sequence[AudioCodec],
    channels: int = AUDIO_PROBE_CHANNELS,
    sample_rate: int = AUDIO_PROBE_SAMPLE_RATE,
    bitrate: float = AUDIO_PROBE_BITRATE,
) -> Optional[AudioCodec]:
    """First codec in the list the probe can encode at the given settings."""
    for codec in codecs:
        if await probe.can_encode_audio(codec.value, channels, sample_rate, bitrate):
            return codec
    return None


class CodecNegotiator:
    """
    Pick a (container, video codec, audio codec) combination that encodes.

    Usage:
        negotiator = CodecNegotiator(FfmpegCapabilities())
        selection = await negotiator.negotiate(1920, 1080, needs_audio=True)
    """

    def __init__(
        self,
        probe: Optional[EncoderProbe] = None,
        video_bitrate: float = VIDEO_PROBE_BITRATE,
        audio_channels: int = AUDIO_PROBE_CHANNELS,
        audio_sample_rate: int = AUDIO_PROBE_SAMPLE_RATE,
        audio_bitrate: float = AUDIO_PROBE_BITRATE,
    ):
        self.probe = probe or FfmpegCapabilities()
        self.video_bitrate = video_bitrate
        self.audio_channels = audio_channels
        self.audio_sample_rate = audio_sample_rate
        self.audio_bitrate = audio_bitrate

    async def _with_audio(
        self, candidates: Sequence[OutputContainer], width: int, height: int, needs_audio: bool
    ) -> Optional[CodecSelection]:
        for container in candidates:
            video_codec = await first_encodable_video_codec(
                self.probe, container.video_codecs, width, height, self.video_bitrate
            )
            if video_codec is None:
                continue

            audio_codec = None
            if needs_audio:
                audio_codec = await first_encodable_audio_codec(
                    self.probe,
                    container.audio_codecs,
                    self.audio_channels,
                    self.audio_sample_rate,
                    self.audio_bitrate,
                )
                if audio_codec is None:
                    continue

            return CodecSelection(container, video_codec, audio_codec)
        return None

    async def _video_only(
        self, candidates: Sequence[OutputContainer], width: int, height: int
    ) -> Optional[CodecSelection]:
        for container in candidates:
            video_codec = await first_encodable_video_codec(
                self.probe, container.video_codecs, width, height, self.video_bitrate
            )
            if video_codec is not None:
                return CodecSelection(container, video_codec, None)
        return None

    async def _negotiate_over(
        self, candidates: Sequence[OutputContainer], width: int, height: int, needs_audio: bool
    ) -> Optional[CodecSelection]:
        selection = await self._with_audio(candidates, width, height, needs_audio)
        if selection is None and needs_audio:
            selection = await self._video_only(candidates, width, height)
            if selection is not None:
                logger.warning(
                    "codecs.audio_dropped",
                    container=selection.container.value,
                    video_codec=selection.video_codec.value,
                )
        return selection

    async def negotiate(
        self,
        width: int,
        height: int,
        needs_audio: bool,
        preference: Union[str, OutputContainer, None] = None,
    ) -> CodecSelection:
        """
        Negotiate the output format.

        The first pass accepts the first container with an encodable video
        codec and, when needed, an encodable audio codec. The second pass
        drops audio so the export can still produce silent video. A
        preferred container that yields nothing falls back to the default
        order (mp4, then webm).

        Args:
            width: Output width
            height: Output height
            needs_audio: Whether a mixdown exists
            preference: Preferred container

        Returns:
            CodecSelection (audio_codec is None when needs_audio is False)

        Raises:
            NoEncodableFormatError: If no candidate yields a video codec
        """
        tried = []
        try:
            preferred = parse_container(preference)
        except ValueError:
            logger.warning("codecs.unknown_container", preference=str(preference))
            preferred = None

        if preferred is not None:
            tried.append(preferred)
            selection = await self._negotiate_over([preferred], width, height, needs_audio)
            if selection is not None:
                return selection
            logger.warning("codecs.preference_unusable", preference=preferred.value)

        defaults = [c for c in DEFAULT_CONTAINER_ORDER if c not in tried]
        tried.extend(defaults)
        selection = await self._negotiate_over(defaults, width, height, needs_audio)
        if selection is None:
            raise NoEncodableFormatError([c.value for c in tried], width, height)

        logger.info(
            "codecs.negotiated",
            container=selection.container.value,
            video_codec=selection.video_codec.value,
            audio_codec=selection.audio_codec.value if selection.audio_codec else None,
        )
        return selection


async def negotiate_codecs(
    probe: EncoderProbe,
    width: int,
    height: int,
    needs_audio: bool,
    preference: Union[str, OutputContainer, None] = None,
) -> CodecSelection:
    """Convenience function to run one negotiation with default probe settings."""
    return await CodecNegotiator(probe).negotiate(width, height, needs_audio, preference)
