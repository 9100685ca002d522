# Timeline package - editable model, invariant checks and per-instant composition

from .composition import (
    Composition,
    CompositionLayer,
    build_composition,
    fit_rect,
    source_timestamp,
)
from .models import Asset, Clip, Timeline, Track
from .validation import (
    check_drop,
    find_overlaps,
    intervals_overlap,
    track_errors,
    validate_timeline,
    validate_track,
)

__all__ = [
    # Model
    "Asset",
    "Clip",
    "Track",
    "Timeline",
    # Composition
    "Composition",
    "CompositionLayer",
    "build_composition",
    "fit_rect",
    "source_timestamp",
    # Validation
    "intervals_overlap",
    "check_drop",
    "find_overlaps",
    "track_errors",
    "validate_track",
    "validate_timeline",
]
