"""
Shared fixtures for timeline package tests.
"""

from dataclasses import dataclass

import pytest

from packages.core.types import MediaKind
from packages.timeline.models import Asset, Clip, Timeline, Track


@dataclass
class StubSource:
    """LoadedSource stand-in that only reports dimensions."""
    asset_id: str
    width: int = 1920
    height: int = 1080
    duration: float = 10.0

    def frame_at(self, timestamp):
        return None

    def dispose(self):
        pass


@pytest.fixture
def video_asset():
    """A 10 second 1080p video asset with audio."""
    return Asset(
        id="a-video",
        kind=MediaKind.VIDEO,
        path="media/clip.mp4",
        duration=10.0,
        width=1920,
        height=1080,
        frame_rate=30.0,
        sample_rate=48000,
        channels=2,
        has_audio=True,
    )


@pytest.fixture
def image_asset():
    """A square still image."""
    return Asset(
        id="a-image",
        kind=MediaKind.IMAGE,
        path="media/logo.png",
        duration=0.0,
        width=500,
        height=500,
    )


@pytest.fixture
def audio_asset():
    """A 30 second music asset."""
    return Asset(
        id="a-audio",
        kind=MediaKind.AUDIO,
        path="media/music.wav",
        duration=30.0,
        sample_rate=48000,
        channels=2,
    )


@pytest.fixture
def back_to_back_timeline(video_asset):
    """One video track with clips A [0, 5) and B [5, 10)."""
    clip_a = Clip(
        id="A", kind=MediaKind.VIDEO, start_time=0.0, duration=5.0,
        trim_start=0.0, trim_end=5.0, asset=video_asset,
    )
    clip_b = Clip(
        id="B", kind=MediaKind.VIDEO, start_time=5.0, duration=5.0,
        trim_start=2.0, trim_end=7.0, asset=video_asset,
    )
    track = Track(id="v1", kind=MediaKind.VIDEO, clips=[clip_a, clip_b])
    return Timeline(tracks=[track])


@pytest.fixture
def stub_sources(video_asset, image_asset):
    """Loaded sources keyed by asset id."""
    return {
        video_asset.id: StubSource(video_asset.id, 1920, 1080),
        image_asset.id: StubSource(image_asset.id, 500, 500, 0.0),
    }
