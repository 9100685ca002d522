"""
Shared fixtures for video package tests.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pytest

from packages.core.types import MediaKind
from packages.timeline.models import Asset, Clip, Timeline, Track


class FakeProbe:
    """EncoderProbe that accepts a fixed set of codec names."""

    def __init__(self, video=("avc", "hevc", "vp9", "vp8", "av1"), audio=("aac", "opus", "vorbis")):
        self.video = set(video)
        self.audio = set(audio)
        self.video_calls = []
        self.audio_calls = []

    async def can_encode_video(self, codec, width, height, bitrate):
        self.video_calls.append(codec)
        return codec in self.video

    async def can_encode_audio(self, codec, channels, sample_rate, bitrate):
        self.audio_calls.append(codec)
        return codec in self.audio


class FakeSource:
    """LoadedSource returning a solid-colour frame."""

    def __init__(self, asset, color=(255, 0, 0)):
        self.asset_id = asset.id
        self.width = asset.width or 64
        self.height = asset.height or 36
        self.duration = asset.duration
        self.color = color
        self.requests = []
        self.dispose_count = 0

    def frame_at(self, timestamp):
        self.requests.append(timestamp)
        frame = np.empty((self.height, self.width, 3), dtype=np.uint8)
        frame[:] = self.color
        return frame

    def dispose(self):
        self.dispose_count += 1


class FakeRenderer:
    """FrameRenderer producing blank frames, optionally failing on one call."""

    def __init__(self, width, height, fail_on=None, error=None):
        self.width = width
        self.height = height
        self.fail_on = fail_on
        self.error = error or RuntimeError("gpu lost")
        self.rendered: List[tuple] = []
        self.dispose_count = 0

    async def render(self, layers):
        index = len(self.rendered)
        if self.fail_on is not None and index == self.fail_on:
            raise self.error
        self.rendered.append(tuple(layer.clip_id for layer in layers))
        return np.zeros((self.height, self.width, 3), dtype=np.uint8)

    def dispose(self):
        self.dispose_count += 1


@dataclass
class FakeMuxer:
    """MediaMuxer recording every call instead of encoding."""

    selection: object
    fail_on_frame: Optional[int] = None
    audio: Optional[tuple] = None
    audio_closed: bool = False
    video_closed: bool = False
    timestamps: List[float] = field(default_factory=list)
    key_frames: List[int] = field(default_factory=list)
    dispose_count: int = 0

    @property
    def mime_type(self):
        return self.selection.container.mime_type

    async def add_audio(self, samples, sample_rate, channels):
        self.audio = (samples.shape, sample_rate, channels)

    def close_audio(self):
        self.audio_closed = True

    async def add_video_frame(self, frame, timestamp, duration, key_frame=False):
        index = len(self.timestamps)
        if self.fail_on_frame is not None and index == self.fail_on_frame:
            raise OSError("disk full")
        if key_frame:
            self.key_frames.append(index)
        self.timestamps.append(timestamp)

    def close_video(self):
        self.video_closed = True

    async def finalize(self):
        return b"container-bytes"

    async def dispose(self):
        self.dispose_count += 1


class Harness:
    """Collects the fakes an export builds so tests can inspect them."""

    def __init__(self, render_fail_on=None, render_error=None, mux_fail_on=None):
        self.render_fail_on = render_fail_on
        self.render_error = render_error
        self.mux_fail_on = mux_fail_on
        self.renderers: List[FakeRenderer] = []
        self.muxers: List[FakeMuxer] = []
        self.sources: List[FakeSource] = []

    def renderer_factory(self, options, sources):
        renderer = FakeRenderer(options.width, options.height, self.render_fail_on, self.render_error)
        self.renderers.append(renderer)
        return renderer

    def muxer_factory(self, selection, options):
        muxer = FakeMuxer(selection, fail_on_frame=self.mux_fail_on)
        self.muxers.append(muxer)
        return muxer

    def source_opener(self, asset):
        source = FakeSource(asset)
        self.sources.append(source)
        return source


class SilentDecoder:
    """AudioDecoder for assets without audio."""

    async def decode(self, asset, start, end, sample_rate, channels):
        return None


class ToneDecoder:
    """AudioDecoder returning a constant level for every window."""

    async def decode(self, asset, start, end, sample_rate, channels):
        frames = int(round((end - start) * sample_rate))
        return np.full((frames, channels), 0.1, dtype=np.float32)


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
def harness_factory():
    return Harness


@pytest.fixture
def silent_decoder():
    return SilentDecoder()


@pytest.fixture
def tone_decoder():
    return ToneDecoder()


@pytest.fixture
def fake_source_factory():
    return FakeSource


@pytest.fixture
def video_asset():
    """A 10 second 64x36 video asset with audio."""
    return Asset(
        id="clip", kind=MediaKind.VIDEO, path="clip.mp4", duration=10.0,
        width=64, height=36, frame_rate=30.0, sample_rate=48000, channels=2, has_audio=True,
    )


@pytest.fixture
def silent_video_asset():
    """A 10 second 64x36 video asset without audio."""
    return Asset(
        id="silent", kind=MediaKind.VIDEO, path="silent.mp4", duration=10.0,
        width=64, height=36, frame_rate=30.0, has_audio=False,
    )


@pytest.fixture
def ten_second_timeline(video_asset):
    """One video track holding a single 10 second clip."""
    clip = Clip(
        id="main", kind=MediaKind.VIDEO, start_time=0.0, duration=10.0,
        trim_start=0.0, trim_end=10.0, asset=video_asset,
    )
    return Timeline(tracks=[Track(id="v1", kind=MediaKind.VIDEO, clips=[clip])])


@pytest.fixture
def short_timeline(video_asset):
    """One video track holding a single 1 second clip."""
    clip = Clip(
        id="short", kind=MediaKind.VIDEO, start_time=0.0, duration=1.0,
        trim_start=0.0, trim_end=1.0, asset=video_asset,
    )
    return Timeline(tracks=[Track(id="v1", kind=MediaKind.VIDEO, clips=[clip])])


@pytest.fixture
def rgb_frame():
    """A 20x40 RGB frame: left half red, right half blue."""
    frame = np.zeros((20, 40, 3), dtype=np.uint8)
    frame[:, :20] = (255, 0, 0)
    frame[:, 20:] = (0, 0, 255)
    return frame
