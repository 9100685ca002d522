"""Tests for encoder probing and codec negotiation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from packages.core.errors import NoEncodableFormatError
from packages.video.codecs import (
    CodecNegotiator,
    CodecSelection,
    FfmpegCapabilities,
    first_encodable_video_codec,
    negotiate_codecs,
    parse_encoder_list,
)
from packages.video.formats import AudioCodec, OutputContainer, VideoCodec

ENCODERS_OUTPUT = """Encoders:
 V..... = Video
 A..... = Audio
 ------
 V....D libx264              libx264 H.264 / AVC / MPEG-4 AVC
 V....D libvpx-vp9           libvpx VP9 (codec vp9)
 A....D aac                  AAC (Advanced Audio Coding)
 A....D libopus              libopus Opus (codec opus)
 A....D pcm_s16le            PCM signed 16-bit little-endian
"""


def _process(stdout=b"", stderr=b"", returncode=0):
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.returncode = returncode
    return process


@pytest.fixture
def mock_encoders(mocker):
    """Patch ffmpeg -encoders to report ENCODERS_OUTPUT."""
    return mocker.patch(
        "packages.video.codecs.asyncio.create_subprocess_exec",
        AsyncMock(return_value=_process(stdout=ENCODERS_OUTPUT.encode())),
    )


class TestParseEncoderList:
    """Tests for parse_encoder_list."""

    def test_parses_names(self):
        names = parse_encoder_list(ENCODERS_OUTPUT)

        assert names == {"libx264", "libvpx-vp9", "aac", "libopus", "pcm_s16le"}

    def test_ignores_legend(self):
        """Test the flag legend above the separator is not parsed."""
        assert "=" not in parse_encoder_list(ENCODERS_OUTPUT)

    def test_empty(self):
        assert parse_encoder_list("") == frozenset()


class TestFfmpegCapabilities:
    """Tests for FfmpegCapabilities."""

    @pytest.mark.asyncio
    async def test_probe_is_cached(self, mock_encoders):
        caps = FfmpegCapabilities(ffmpeg_bin="ffmpeg-test")

        first = await caps.available_encoders()
        second = await caps.available_encoders()

        assert first == second
        mock_encoders.assert_awaited_once()
        assert mock_encoders.await_args.args[:3] == ("ffmpeg-test", "-hide_banner", "-encoders")

    @pytest.mark.asyncio
    async def test_encoder_lookup(self, mock_encoders):
        caps = FfmpegCapabilities(ffmpeg_bin="ffmpeg-test")

        assert await caps.video_encoder(VideoCodec.AVC) == "libx264"
        assert await caps.video_encoder("vp9") == "libvpx-vp9"
        assert await caps.video_encoder(VideoCodec.HEVC) is None
        assert await caps.audio_encoder(AudioCodec.OPUS) == "libopus"

    @pytest.mark.asyncio
    async def test_can_encode_video(self, mock_encoders):
        caps = FfmpegCapabilities(ffmpeg_bin="ffmpeg-test")

        assert await caps.can_encode_video("avc", 1920, 1080, 8e6)
        assert not await caps.can_encode_video("hevc", 1920, 1080, 8e6)

    @pytest.mark.asyncio
    async def test_avc_needs_even_dimensions(self, mock_encoders):
        caps = FfmpegCapabilities(ffmpeg_bin="ffmpeg-test")

        assert not await caps.can_encode_video("avc", 1921, 1080, 8e6)
        assert await caps.can_encode_video("vp9", 1921, 1080, 8e6)

    @pytest.mark.asyncio
    async def test_rejects_bad_sizes_and_bitrates(self, mock_encoders):
        caps = FfmpegCapabilities(ffmpeg_bin="ffmpeg-test")

        assert not await caps.can_encode_video("avc", 8, 8, 8e6)
        assert not await caps.can_encode_video("avc", 1920, 1080, 0)

    @pytest.mark.asyncio
    async def test_can_encode_audio(self, mock_encoders):
        caps = FfmpegCapabilities(ffmpeg_bin="ffmpeg-test")

        assert await caps.can_encode_audio("opus", 2, 48000, 192e3)
        assert not await caps.can_encode_audio("opus", 2, 44100, 192e3)
        assert not await caps.can_encode_audio("aac", 12, 48000, 192e3)
        assert not await caps.can_encode_audio("vorbis", 2, 48000, 192e3)

    @pytest.mark.asyncio
    async def test_missing_ffmpeg_reports_nothing(self, mocker):
        """Test a missing binary yields no encoders instead of raising."""
        mocker.patch(
            "packages.video.codecs.asyncio.create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("ffmpeg-test")),
        )
        caps = FfmpegCapabilities(ffmpeg_bin="ffmpeg-test")

        assert await caps.available_encoders() == frozenset()
        assert not await caps.can_encode_video("avc", 1920, 1080, 8e6)

    @pytest.mark.asyncio
    async def test_failing_ffmpeg_reports_nothing(self, mocker):
        mocker.patch(
            "packages.video.codecs.asyncio.create_subprocess_exec",
            AsyncMock(return_value=_process(stderr=b"boom", returncode=1)),
        )

        assert await FfmpegCapabilities(ffmpeg_bin="x").available_encoders() == frozenset()


class TestFirstEncodable:
    """Tests for the first-match helpers."""

    @pytest.mark.asyncio
    async def test_order_is_respected(self, fake_probe):
        fake_probe.video = {"vp9", "av1"}

        codec = await first_encodable_video_codec(
            fake_probe, OutputContainer.MP4.video_codecs, 1280, 720
        )

        assert codec == VideoCodec.VP9
        assert fake_probe.video_calls == ["avc", "hevc", "vp9"]


class TestCodecNegotiator:
    """Tests for CodecNegotiator.negotiate."""

    @pytest.mark.asyncio
    async def test_mp4_first(self, fake_probe):
        selection = await CodecNegotiator(fake_probe).negotiate(1920, 1080, needs_audio=True)

        assert selection == CodecSelection(OutputContainer.MP4, VideoCodec.AVC, AudioCodec.AAC)
        assert selection.has_audio

    @pytest.mark.asyncio
    async def test_no_audio_needed(self, fake_probe):
        """Test audio is never negotiated without a mixdown."""
        selection = await CodecNegotiator(fake_probe).negotiate(1920, 1080, needs_audio=False)

        assert selection.audio_codec is None
        assert fake_probe.audio_calls == []

    @pytest.mark.asyncio
    async def test_falls_through_to_webm(self, fake_probe):
        fake_probe.video = {"vp8"}

        selection = await CodecNegotiator(fake_probe).negotiate(1280, 720, needs_audio=True)

        assert selection == CodecSelection(OutputContainer.WEBM, VideoCodec.VP8, AudioCodec.OPUS)

    @pytest.mark.asyncio
    async def test_drops_audio_when_unencodable(self, fake_probe):
        """Test the second pass keeps video when no audio codec works."""
        fake_probe.audio = set()

        selection = await CodecNegotiator(fake_probe).negotiate(1280, 720, needs_audio=True)

        assert selection == CodecSelection(OutputContainer.MP4, VideoCodec.AVC, None)
        assert not selection.has_audio

    @pytest.mark.asyncio
    async def test_takes_first_encodable_audio_codec(self, fake_probe):
        """Test mp4 is kept with a later audio codec when aac is missing."""
        fake_probe.audio = {"opus"}
        fake_probe.video = {"avc", "vp9"}

        selection = await CodecNegotiator(fake_probe).negotiate(1280, 720, needs_audio=True)

        assert selection.container == OutputContainer.MP4
        assert selection.audio_codec == AudioCodec.OPUS

    @pytest.mark.asyncio
    async def test_preference_honoured(self, fake_probe):
        selection = await CodecNegotiator(fake_probe).negotiate(
            1280, 720, needs_audio=True, preference="webm"
        )

        assert selection == CodecSelection(OutputContainer.WEBM, VideoCodec.VP9, AudioCodec.OPUS)

    @pytest.mark.asyncio
    async def test_unknown_preference_falls_back(self, fake_probe):
        selection = await CodecNegotiator(fake_probe).negotiate(
            1280, 720, needs_audio=False, preference="avi"
        )

        assert selection.container == OutputContainer.MP4

    @pytest.mark.asyncio
    async def test_unusable_preference_falls_back(self, fake_probe):
        """Test an audio-only preference cannot carry video and falls back to mp4."""
        selection = await CodecNegotiator(fake_probe).negotiate(
            1280, 720, needs_audio=True, preference=OutputContainer.WAV
        )

        assert selection.container == OutputContainer.MP4

    @pytest.mark.asyncio
    async def test_nothing_encodable(self, fake_probe):
        fake_probe.video = set()

        with pytest.raises(NoEncodableFormatError) as exc_info:
            await CodecNegotiator(fake_probe).negotiate(
                1280, 720, needs_audio=True, preference="mkv"
            )

        assert exc_info.value.containers == ["mkv", "mp4", "webm"]
        assert exc_info.value.details["width"] == 1280

    @pytest.mark.asyncio
    async def test_convenience_function(self, fake_probe):
        selection = await negotiate_codecs(fake_probe, 640, 360, needs_audio=False, preference="mov")

        assert selection.container == OutputContainer.MOV
