"""
Shared fixtures for audio package tests.
"""

import numpy as np
import pytest

from packages.core.errors import SourceDecodeError
from packages.core.types import MediaKind
from packages.timeline.models import Asset, Clip, Track


class FakeDecoder:
    """AudioDecoder stand-in producing constant-valued PCM.

    Each asset decodes to its `levels` value for the whole window. Asset ids
    listed in `failing` raise SourceDecodeError; ids in `errors` raise the
    mapped exception.
    """

    def __init__(self, levels=None, failing=(), errors=None):
        self.levels = levels or {}
        self.failing = set(failing)
        self.errors = errors or {}
        self.calls = []

    async def decode(self, asset, start, end, sample_rate, channels):
        self.calls.append((asset.id, start, end))
        if asset.id in self.failing:
            raise SourceDecodeError(asset.id, "corrupt stream", timestamp=start)
        if asset.id in self.errors:
            raise self.errors[asset.id]
        if asset.has_audio is False:
            return None
        frames = int(round((end - start) * sample_rate))
        return np.full((frames, channels), self.levels.get(asset.id, 0.5), dtype=np.float32)


def make_clip(clip_id, asset, start, duration, trim_start=0.0):
    return Clip(
        id=clip_id,
        kind=asset.kind,
        start_time=start,
        duration=duration,
        trim_start=trim_start,
        trim_end=trim_start + duration,
        asset=asset,
    )


@pytest.fixture
def music_asset():
    """A 30 second stereo music file."""
    return Asset(
        id="music", kind=MediaKind.AUDIO, path="music.wav", duration=30.0,
        sample_rate=48000, channels=2, has_audio=True,
    )


@pytest.fixture
def voice_asset():
    """A 10 second mono voice-over."""
    return Asset(
        id="voice", kind=MediaKind.AUDIO, path="voice.wav", duration=10.0,
        sample_rate=48000, channels=1, has_audio=True,
    )


@pytest.fixture
def silent_video_asset():
    """A video file without an audio stream."""
    return Asset(
        id="silent", kind=MediaKind.VIDEO, path="silent.mp4", duration=10.0,
        width=640, height=360, has_audio=False,
    )


@pytest.fixture
def unprobed_video_asset():
    """A video file whose audio layout was never probed."""
    return Asset(
        id="camera", kind=MediaKind.VIDEO, path="camera.mp4", duration=10.0,
        width=1280, height=720,
    )


@pytest.fixture
def fake_decoder():
    return FakeDecoder(levels={"music": 0.25, "voice": 0.5})


@pytest.fixture
def music_track(music_asset):
    """One audio track with the music from 0 to 4 seconds."""
    return Track(id="music", kind=MediaKind.AUDIO, clips=[make_clip("m1", music_asset, 0.0, 4.0)])


@pytest.fixture
def clip_factory():
    """Build clips whose trim window matches their duration."""
    return make_clip


@pytest.fixture
def decoder_factory():
    """Build FakeDecoder instances with custom levels or failures."""
    return FakeDecoder
