"""
Validation - pure checks for timeline invariants.

These functions never touch UI state, so drag-and-drop handlers and
headless callers share one overlap rule.
"""

from typing import List, Optional, Tuple

from packages.core.errors import TimelineValidationError
from packages.core.types import MediaKind

from .models import Clip, Timeline, Track

# Tolerance for float noise when comparing trim bounds against asset duration
_EPSILON = 1e-6


def intervals_overlap(a_start: float, a_end: float, b_start: float, b_end: float) -> bool:
    """Whether half-open intervals [a_start, a_end) and [b_start, b_end) intersect.

    Back-to-back intervals (a_end == b_start) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def check_drop(
    track: Track,
    start: float,
    duration: float,
    ignore_clip_id: Optional[str] = None,
) -> bool:
    """
    Check whether a clip can be placed on a track without overlap.

    Args:
        track: Target track
        start: Proposed start time in timeline seconds
        duration: Duration of the clip being placed
        ignore_clip_id: Clip being moved (skipped when it already sits on the track)

    Returns:
        True if the proposed interval is free
    """
    if start < 0 or duration <= 0:
        return False

    end = start + duration
    for clip in track.clips:
        if clip.id == ignore_clip_id:
            continue
        if intervals_overlap(start, end, clip.start_time, clip.end_time):
            return False
    return True


def find_overlaps(track: Track) -> List[Tuple[str, str]]:
    """List id pairs of clips on a track whose intervals intersect."""
    ordered = sorted(track.clips, key=lambda c: (c.start_time, c.id))
    overlaps = []
    for i, clip in enumerate(ordered):
        for other in ordered[i + 1:]:
            if other.start_time >= clip.end_time:
                break
            if intervals_overlap(clip.start_time, clip.end_time, other.start_time, other.end_time):
                overlaps.append((clip.id, other.id))
    return overlaps


def _clip_errors(track: Track, clip: Clip) -> List[str]:
    errors = []

    if clip.start_time < 0:
        errors.append(f"clip '{clip.id}' starts before 0 ({clip.start_time})")
    if clip.duration <= 0:
        errors.append(f"clip '{clip.id}' has non-positive duration ({clip.duration})")
    if clip.trim_start < 0 or clip.trim_end < clip.trim_start:
        errors.append(
            f"clip '{clip.id}' has invalid trim window [{clip.trim_start}, {clip.trim_end}]"
        )
    elif (
        clip.asset is not None
        and clip.asset.kind != MediaKind.IMAGE
        and clip.trim_end > clip.asset.duration + _EPSILON
    ):
        errors.append(
            f"clip '{clip.id}' trims past the end of asset '{clip.asset.id}' "
            f"({clip.trim_end} > {clip.asset.duration})"
        )

    if clip.kind != track.kind:
        errors.append(
            f"clip '{clip.id}' is {clip.kind.value} but track is {track.kind.value}"
        )
    if clip.asset is not None and clip.asset.kind != clip.kind:
        errors.append(
            f"clip '{clip.id}' is {clip.kind.value} but asset '{clip.asset.id}' "
            f"is {clip.asset.kind.value}"
        )

    return errors


def track_errors(track: Track) -> List[str]:
    """Collect every invariant violation on a track."""
    errors = []
    for clip in track.clips:
        errors.extend(_clip_errors(track, clip))
    for first, second in find_overlaps(track):
        errors.append(f"clips '{first}' and '{second}' overlap")
    return errors


def validate_track(track: Track) -> None:
    """
    Validate a single track.

    Raises:
        TimelineValidationError: Listing every problem found
    """
    errors = track_errors(track)
    if errors:
        raise TimelineValidationError(errors, track_id=track.id)


def validate_timeline(timeline: Timeline) -> None:
    """
    Validate every track and the uniqueness of track and clip ids.

    Raises:
        TimelineValidationError: Listing every problem found
    """
    errors = []
    seen_tracks = set()
    seen_clips = set()

    for track in timeline.tracks:
        if track.id in seen_tracks:
            errors.append(f"duplicate track id '{track.id}'")
        seen_tracks.add(track.id)

        for clip in track.clips:
            if clip.id in seen_clips:
                errors.append(f"duplicate clip id '{clip.id}'")
            seen_clips.add(clip.id)

        errors.extend(f"track '{track.id}': {e}" for e in track_errors(track))

    if errors:
        raise TimelineValidationError(errors)
