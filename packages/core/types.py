"""Shared type definitions for localcut.

Contains canonical type definitions used across packages.
Domain-specific types should remain in their respective packages.

Core Types (shared across packages):
- MediaKind: Closed medium variant for tracks, clips and assets
- FitMode: How a source is fitted into the output frame
- ExportState: Render/encode loop states
- ClipTransform: Per-clip placement in output pixels
- ClipFilters: Per-clip colour/opacity adjustments
- Rect: Destination rectangle in output pixels

Domain-Specific Types (remain in packages):
- timeline.Track / timeline.Clip / timeline.Asset: Timeline model
- timeline.CompositionLayer: Per-instant visual layer
- audio.MixdownBuffer: Mixed PCM audio
- video.OutputContainer / video.VideoCodec / video.AudioCodec: Formats
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


# ============ Enums ============


class MediaKind(Enum):
    """Medium of a track, clip or asset."""

    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"

    @property
    def is_visual(self) -> bool:
        """True for media that contribute layers to the frame."""
        return self in (MediaKind.VIDEO, MediaKind.IMAGE)

    @property
    def may_carry_audio(self) -> bool:
        """True for media whose assets can hold an audio stream."""
        return self in (MediaKind.VIDEO, MediaKind.AUDIO)


class FitMode(Enum):
    """How a source rectangle is fitted into the output frame."""

    CONTAIN = "contain"  # Letterbox, whole source visible
    COVER = "cover"  # Fill frame, crop overflow
    FILL = "fill"  # Stretch to output size


class ExportState(Enum):
    """Render/encode loop states.

    IDLE -> MIXING_AUDIO -> NEGOTIATING_CODECS -> RENDERING -> FINALIZING -> DONE
    CANCELLED and FAILED are terminal and reachable from the working states.
    """

    IDLE = "idle"
    MIXING_AUDIO = "mixing_audio"
    NEGOTIATING_CODECS = "negotiating_codecs"
    RENDERING = "rendering"
    FINALIZING = "finalizing"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExportState.DONE, ExportState.CANCELLED, ExportState.FAILED)


# ============ Dataclasses ============


@dataclass(frozen=True)
class ClipTransform:
    """Placement of a clip in output pixel coordinates.

    x/y offset the layer from its fitted, centred position. Rotation is in
    degrees and is snapped to a multiple of 90 when composed.
    """

    x: float = 0.0
    y: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = 0.0

    @property
    def quarter_turns(self) -> int:
        """Rotation snapped to the nearest quarter turn (0-3, clockwise)."""
        return int(round(self.rotation / 90.0)) % 4

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "x": self.x,
            "y": self.y,
            "scale_x": self.scale_x,
            "scale_y": self.scale_y,
            "rotation": self.rotation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClipTransform":
        """Create from dictionary."""
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            scale_x=float(data.get("scale_x", 1.0)),
            scale_y=float(data.get("scale_y", 1.0)),
            rotation=float(data.get("rotation", 0.0)),
        )


@dataclass(frozen=True)
class ClipFilters:
    """Colour and opacity adjustments for a clip.

    Ranges:
    - opacity: 0 to 100 (100 = fully opaque)
    - brightness, contrast, saturation: -100 to +100 (0 = unchanged)
    - hue: -180 to +180 degrees
    - blur: 0 to 100 (maps to 0-20px)
    """

    opacity: float = 100.0
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    hue: float = 0.0
    blur: float = 0.0

    @property
    def is_identity(self) -> bool:
        """True when the filters leave pixels unchanged."""
        return self == ClipFilters()

    @property
    def alpha(self) -> float:
        """Opacity as a 0-1 blend factor."""
        return max(0.0, min(1.0, self.opacity / 100.0))

    @property
    def blur_radius(self) -> float:
        """Blur radius in pixels."""
        return max(0.0, self.blur) / 100.0 * 20.0

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for JSON serialization."""
        return {
            "opacity": self.opacity,
            "brightness": self.brightness,
            "contrast": self.contrast,
            "saturation": self.saturation,
            "hue": self.hue,
            "blur": self.blur,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClipFilters":
        """Create from dictionary."""
        return cls(
            opacity=float(data.get("opacity", 100.0)),
            brightness=float(data.get("brightness", 0.0)),
            contrast=float(data.get("contrast", 0.0)),
            saturation=float(data.get("saturation", 0.0)),
            hue=float(data.get("hue", 0.0)),
            blur=float(data.get("blur", 0.0)),
        )


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in output pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}
