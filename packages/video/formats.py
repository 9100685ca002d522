"""
Formats - output containers and the codecs each can carry.
"""

from enum import Enum
from typing import Dict, Optional, Tuple, Union


class VideoCodec(Enum):
    """Video codecs the export pipeline can negotiate."""
    AVC = "avc"
    HEVC = "hevc"
    VP8 = "vp8"
    VP9 = "vp9"
    AV1 = "av1"

    @property
    def label(self) -> str:
        return VIDEO_CODEC_LABELS[self]


class AudioCodec(Enum):
    """Audio codecs the export pipeline can negotiate."""
    AAC = "aac"
    OPUS = "opus"
    MP3 = "mp3"
    VORBIS = "vorbis"
    FLAC = "flac"
    PCM_S16 = "pcm-s16"
    PCM_F32 = "pcm-f32"

    @property
    def label(self) -> str:
        return AUDIO_CODEC_LABELS[self]


class OutputContainer(Enum):
    """Supported output containers."""
    MP4 = "mp4"
    WEBM = "webm"
    MOV = "mov"
    MKV = "mkv"
    WAV = "wav"
    AAC = "aac"
    MP3 = "mp3"

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @property
    def extension(self) -> str:
        """Canonical file extension (without dot)."""
        return self.value

    @property
    def ffmpeg_format(self) -> str:
        """Muxer name passed to ffmpeg's -f option."""
        return _FFMPEG_FORMATS[self]

    @property
    def is_audio_only(self) -> bool:
        return not self.video_codecs

    @property
    def video_codecs(self) -> Tuple[VideoCodec, ...]:
        """Supported video codecs in preference order."""
        return _VIDEO_CODECS[self]

    @property
    def audio_codecs(self) -> Tuple[AudioCodec, ...]:
        """Supported audio codecs in preference order."""
        return _AUDIO_CODECS[self]


VIDEO_CODEC_LABELS: Dict[VideoCodec, str] = {
    VideoCodec.AVC: "H.264 (AVC)",
    VideoCodec.HEVC: "H.265 (HEVC)",
    VideoCodec.VP8: "VP8",
    VideoCodec.VP9: "VP9",
    VideoCodec.AV1: "AV1",
}

AUDIO_CODEC_LABELS: Dict[AudioCodec, str] = {
    AudioCodec.AAC: "AAC",
    AudioCodec.OPUS: "Opus",
    AudioCodec.MP3: "MP3",
    AudioCodec.VORBIS: "Vorbis",
    AudioCodec.FLAC: "FLAC",
    AudioCodec.PCM_S16: "PCM 16-bit",
    AudioCodec.PCM_F32: "PCM Float 32-bit",
}

_MIME_TYPES: Dict[OutputContainer, str] = {
    OutputContainer.MP4: "video/mp4",
    OutputContainer.WEBM: "video/webm",
    OutputContainer.MOV: "video/quicktime",
    OutputContainer.MKV: "video/x-matroska",
    OutputContainer.WAV: "audio/wav",
    OutputContainer.AAC: "audio/aac",
    OutputContainer.MP3: "audio/mpeg",
}

_FFMPEG_FORMATS: Dict[OutputContainer, str] = {
    OutputContainer.MP4: "mp4",
    OutputContainer.WEBM: "webm",
    OutputContainer.MOV: "mov",
    OutputContainer.MKV: "matroska",
    OutputContainer.WAV: "wav",
    OutputContainer.AAC: "adts",
    OutputContainer.MP3: "mp3",
}

_VIDEO_CODECS: Dict[OutputContainer, Tuple[VideoCodec, ...]] = {
    OutputContainer.MP4: (VideoCodec.AVC, VideoCodec.HEVC, VideoCodec.VP9, VideoCodec.AV1),
    OutputContainer.WEBM: (VideoCodec.VP9, VideoCodec.VP8, VideoCodec.AV1),
    OutputContainer.MOV: (VideoCodec.AVC, VideoCodec.HEVC, VideoCodec.VP9, VideoCodec.AV1),
    OutputContainer.MKV: (
        VideoCodec.AVC, VideoCodec.HEVC, VideoCodec.VP9, VideoCodec.VP8, VideoCodec.AV1,
    ),
    OutputContainer.WAV: (),
    OutputContainer.AAC: (),
    OutputContainer.MP3: (),
}

_AUDIO_CODECS: Dict[OutputContainer, Tuple[AudioCodec, ...]] = {
    OutputContainer.MP4: (AudioCodec.AAC, AudioCodec.OPUS, AudioCodec.MP3, AudioCodec.FLAC),
    OutputContainer.WEBM: (AudioCodec.OPUS, AudioCodec.VORBIS),
    OutputContainer.MOV: (
        AudioCodec.AAC, AudioCodec.OPUS, AudioCodec.MP3, AudioCodec.FLAC,
        AudioCodec.PCM_S16, AudioCodec.PCM_F32,
    ),
    OutputContainer.MKV: (
        AudioCodec.AAC, AudioCodec.OPUS, AudioCodec.VORBIS, AudioCodec.MP3,
        AudioCodec.FLAC, AudioCodec.PCM_S16, AudioCodec.PCM_F32,
    ),
    OutputContainer.WAV: (AudioCodec.PCM_S16, AudioCodec.PCM_F32),
    OutputContainer.AAC: (AudioCodec.AAC,),
    OutputContainer.MP3: (AudioCodec.MP3,),
}

# Tried in this order when the caller has no preference
DEFAULT_CONTAINER_ORDER: Tuple[OutputContainer, ...] = (OutputContainer.MP4, OutputContainer.WEBM)


def parse_container(value: Union[str, OutputContainer, None]) -> Optional[OutputContainer]:
    """
    Resolve a container preference.

    Args:
        value: Container enum, name such as "mp4" / ".MKV", or None

    Returns:
        The container, or None when value is None

    Raises:
        ValueError: If the name is not a known container
    """
    if value is None or isinstance(value, OutputContainer):
        return value
    return OutputContainer(value.strip().lower().lstrip("."))
