"""
Sources - open visual assets for frame-accurate reads during an export.
"""

from typing import Callable, Dict, Optional, Sequence

import cv2
import numpy as np
import structlog

from packages.core.errors import SourceDecodeError, SourceLoadError
from packages.core.protocols import LoadedSource
from packages.core.types import MediaKind
from packages.timeline.models import Asset, Track

logger = structlog.get_logger(__name__)

SourceOpener = Callable[[Asset], LoadedSource]


class VideoFileSource:
    """
    Random-access frames from a video file.

    Export reads timestamps in increasing order, so consecutive frames are
    read sequentially and seeking only happens on jumps (trim starts, or a
    clip reused later in the timeline).
    """

    def __init__(self, asset: Asset):
        self.asset_id = asset.id
        self.path = asset.path
        self._cap = cv2.VideoCapture(str(asset.path))

        if not self._cap.isOpened():
            self._cap.release()
            raise SourceLoadError(asset.id, f"could not open video: {asset.path}")

        self.fps = self._cap.get(cv2.CAP_PROP_FPS) or asset.frame_rate or 30.0
        self.frame_count = int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        self.width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH) or asset.width or 0)
        self.height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or asset.height or 0)
        if asset.duration:
            self.duration = float(asset.duration)
        else:
            self.duration = self.frame_count / self.fps if self.frame_count else 0.0

        self._position = 0  # index of the next frame cap.read() returns
        self._last_index: Optional[int] = None
        self._last_frame: Optional[np.ndarray] = None

    def _index_for(self, timestamp: float) -> int:
        index = int(max(0.0, timestamp) * self.fps + 1e-6)
        if self.frame_count > 0:
            index = min(index, self.frame_count - 1)
        return index

    def frame_at(self, timestamp: float) -> np.ndarray:
        """
        Get the RGB frame shown at a source timestamp.

        Raises:
            SourceDecodeError: If no frame can be decoded at or before it
        """
        index = self._index_for(timestamp)
        if index == self._last_index and self._last_frame is not None:
            return self._last_frame

        if index != self._position:
            self._cap.set(cv2.CAP_PROP_POS_FRAMES, index)
            self._position = index

        ret, frame = self._cap.read()
        if not ret or frame is None:
            # Reported frame counts can overshoot; hold the last good frame
            if self._last_frame is not None:
                return self._last_frame
            raise SourceDecodeError(self.asset_id, "failed to decode frame", timestamp=timestamp)

        self._position = index + 1
        self._last_index = index
        # Convert BGR to RGB
        self._last_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        return self._last_frame

    def dispose(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._last_frame = None


class ImageSource:
    """A still image; every timestamp shows the same frame."""

    def __init__(self, asset: Asset):
        self.asset_id = asset.id
        self.path = asset.path

        frame = cv2.imread(str(asset.path), cv2.IMREAD_COLOR)
        if frame is None:
            raise SourceLoadError(asset.id, f"could not read image: {asset.path}")

        self._frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        self.height, self.width = self._frame.shape[:2]
        self.duration = float(asset.duration or 0.0)

    def frame_at(self, timestamp: float) -> np.ndarray:
        return self._frame

    def dispose(self) -> None:
        pass


def open_source(asset: Asset) -> LoadedSource:
    """Open the right source type for an asset's medium."""
    if asset.kind == MediaKind.IMAGE:
        return ImageSource(asset)
    if asset.kind == MediaKind.VIDEO:
        return VideoFileSource(asset)
    raise SourceLoadError(asset.id, f"{asset.kind.value} assets have no frames")


def load_sources(
    tracks: Sequence[Track],
    opener: SourceOpener = open_source,
) -> Dict[str, LoadedSource]:
    """
    Open every visual asset referenced by visible tracks, once per asset.

    Args:
        tracks: Timeline tracks
        opener: Factory turning an Asset into a LoadedSource

    Returns:
        Loaded sources keyed by asset id

    Raises:
        SourceLoadError: If any asset fails to open (already opened sources
            are disposed first)
    """
    sources: Dict[str, LoadedSource] = {}
    try:
        for track in tracks:
            if track.hidden or not track.kind.is_visual:
                continue
            for clip in track.clips:
                asset = clip.asset
                if asset is None or asset.id in sources or not asset.kind.is_visual:
                    continue
                sources[asset.id] = opener(asset)
                logger.debug("sources.opened", asset_id=asset.id, path=str(asset.path))
    except BaseException:
        dispose_sources(sources)
        raise

    return sources


def dispose_sources(sources: Dict[str, LoadedSource]) -> None:
    """Dispose every source and empty the mapping."""
    for asset_id, source in sources.items():
        try:
            source.dispose()
        except Exception as e:
            logger.warning("sources.dispose_failed", asset_id=asset_id, reason=str(e))
    sources.clear()
