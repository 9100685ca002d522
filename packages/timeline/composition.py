"""
Composition - map a timeline instant to the stack of visual layers to draw.

build_composition() is pure: the same time, tracks, sources and output
settings always produce the same layers in the same order, so preview and
export agree frame for frame.

Layer order convention: tracks are listed top-most first (track 0 is on
top). Layers come back bottom to top, each carrying
z_index = len(tracks) - 1 - track_index.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence, Tuple

from packages.core.protocols import LoadedSource
from packages.core.types import ClipFilters, ClipTransform, FitMode, MediaKind, Rect

from .models import Clip, Track


@dataclass(frozen=True)
class CompositionLayer:
    """One visual layer at one instant. Derived, never persisted."""

    clip_id: str
    asset_id: str
    kind: MediaKind
    source_timestamp: float
    rect: Rect  # fitted destination before the clip transform
    transform: ClipTransform = field(default_factory=ClipTransform)
    filters: ClipFilters = field(default_factory=ClipFilters)
    z_index: int = 0


@dataclass(frozen=True)
class Composition:
    """Layers to draw at a timeline instant, bottom to top."""

    time: float
    layers: Tuple[CompositionLayer, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.layers


def fit_rect(
    source_width: float,
    source_height: float,
    output_width: float,
    output_height: float,
    fit_mode: FitMode = FitMode.CONTAIN,
) -> Rect:
    """
    Fit a source into the output frame, centred.

    Args:
        source_width: Source width in pixels
        source_height: Source height in pixels
        output_width: Frame width in pixels
        output_height: Frame height in pixels
        fit_mode: contain (letterbox), cover (crop) or fill (stretch)

    Returns:
        Destination rectangle in output pixels
    """
    if fit_mode == FitMode.FILL or source_width <= 0 or source_height <= 0:
        return Rect(0.0, 0.0, float(output_width), float(output_height))

    scale_x = output_width / source_width
    scale_y = output_height / source_height
    if fit_mode == FitMode.CONTAIN:
        scale = min(scale_x, scale_y)
    elif fit_mode == FitMode.COVER:
        scale = max(scale_x, scale_y)
    else:
        raise ValueError(f"Unknown fit mode: {fit_mode}")

    width = source_width * scale
    height = source_height * scale
    return Rect(
        (output_width - width) / 2.0,
        (output_height - height) / 2.0,
        width,
        height,
    )


def source_timestamp(clip: Clip, time: float) -> float:
    """Source timestamp a clip shows at a timeline instant.

    Images have no temporal extent and always sample 0.
    """
    if clip.kind == MediaKind.IMAGE:
        return 0.0
    return clip.source_time_at(time)


def build_composition(
    time: float,
    tracks: Sequence[Track],
    loaded_sources: Mapping[str, LoadedSource],
    width: int,
    height: int,
    fit_mode: FitMode = FitMode.CONTAIN,
    transform_overrides: Optional[Mapping[str, ClipTransform]] = None,
    filter_overrides: Optional[Mapping[str, ClipFilters]] = None,
) -> Composition:
    """
    Build the visual layer stack for one timeline instant.

    Hidden tracks, audio tracks, instants with no covering clip and clips
    whose asset was not loaded contribute nothing.

    Args:
        time: Timeline time in seconds
        tracks: Tracks in display order (index 0 on top)
        loaded_sources: Loaded sources keyed by asset id
        width: Output width in pixels
        height: Output height in pixels
        fit_mode: Default fit for clips without their own
        transform_overrides: Per-clip transforms replacing the stored ones
        filter_overrides: Per-clip filters replacing the stored ones

    Returns:
        Composition with layers ordered bottom to top
    """
    layers = []
    track_count = len(tracks)

    for track_index in range(track_count - 1, -1, -1):
        track = tracks[track_index]
        if track.hidden or not track.kind.is_visual:
            continue

        clip = track.clip_at(time)
        if clip is None or clip.asset is None:
            continue

        source = loaded_sources.get(clip.asset.id)
        if source is None:
            continue

        transform = clip.transform
        if transform_overrides and clip.id in transform_overrides:
            transform = transform_overrides[clip.id]
        filters = clip.filters
        if filter_overrides and clip.id in filter_overrides:
            filters = filter_overrides[clip.id]

        source_w, source_h = source.width, source.height
        if transform.quarter_turns % 2 == 1:
            source_w, source_h = source_h, source_w

        layers.append(
            CompositionLayer(
                clip_id=clip.id,
                asset_id=clip.asset.id,
                kind=clip.kind,
                source_timestamp=source_timestamp(clip, time),
                rect=fit_rect(source_w, source_h, width, height, clip.fit_mode or fit_mode),
                transform=transform,
                filters=filters,
                z_index=track_count - 1 - track_index,
            )
        )

    return Composition(time=time, layers=tuple(layers))
