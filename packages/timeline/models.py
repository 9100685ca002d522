"""
Timeline model - tracks, clips and the assets they borrow.

The model is owned by the editing layer. Export code receives a Timeline
value and treats it as a read-only snapshot for the whole export.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from packages.core.types import ClipFilters, ClipTransform, FitMode, MediaKind
from packages.core.utils import clamp


@dataclass
class Asset:
    """An imported media file.

    Owned by the import layer; exports only borrow it.
    """

    id: str
    kind: MediaKind
    path: Path
    duration: float
    name: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate: Optional[float] = None
    sample_rate: Optional[int] = None
    channels: Optional[int] = None
    has_audio: Optional[bool] = None  # None: not probed yet

    def __post_init__(self):
        self.path = Path(self.path)
        if not self.name:
            self.name = self.path.name
        if self.kind == MediaKind.IMAGE:
            self.has_audio = False
        elif self.has_audio is None and self.kind == MediaKind.AUDIO:
            self.has_audio = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "path": str(self.path),
            "duration": self.duration,
            "name": self.name,
        }
        if self.has_audio is not None:
            result["has_audio"] = self.has_audio
        for key in ("width", "height", "frame_rate", "sample_rate", "channels"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        """Create from dictionary."""
        kind = MediaKind(data.get("kind", "video"))
        return cls(
            id=data["id"],
            kind=kind,
            path=Path(data.get("path", "")),
            duration=float(data.get("duration", 0.0)),
            name=data.get("name", ""),
            width=data.get("width"),
            height=data.get("height"),
            frame_rate=data.get("frame_rate"),
            sample_rate=data.get("sample_rate"),
            channels=data.get("channels"),
            has_audio=data.get("has_audio"),
        )


@dataclass
class Clip:
    """A bounded placement of an asset on the timeline.

    start_time/duration are timeline seconds; trim_start/trim_end are the
    source seconds consumed from the asset. A clip whose trim window is longer
    or shorter than its duration plays back faster or slower.
    """

    id: str
    kind: MediaKind
    start_time: float
    duration: float
    trim_start: float = 0.0
    trim_end: float = 0.0
    name: str = ""
    asset: Optional[Asset] = None
    transform: ClipTransform = field(default_factory=ClipTransform)
    filters: ClipFilters = field(default_factory=ClipFilters)
    fit_mode: Optional[FitMode] = None

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    @property
    def speed(self) -> float:
        """Implied playback speed: source seconds per timeline second."""
        if self.duration <= 0:
            return 1.0
        return (self.trim_end - self.trim_start) / self.duration

    def contains(self, time: float) -> bool:
        """Whether the half-open interval [start_time, end_time) holds time."""
        return self.start_time <= time < self.end_time

    def source_time_at(self, time: float) -> float:
        """Map a timeline instant to a source timestamp inside the trim window."""
        mapped = self.trim_start + (time - self.start_time) * self.speed
        return clamp(mapped, self.trim_start, self.trim_end)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "name": self.name,
            "start_time": self.start_time,
            "duration": self.duration,
            "trim_start": self.trim_start,
            "trim_end": self.trim_end,
            "asset_id": self.asset.id if self.asset else None,
            "transform": self.transform.to_dict(),
            "filters": self.filters.to_dict(),
        }
        if self.fit_mode is not None:
            result["fit_mode"] = self.fit_mode.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any], assets: Optional[Dict[str, Asset]] = None) -> "Clip":
        """Create from dictionary, resolving asset_id against an asset registry."""
        assets = assets or {}
        asset_id = data.get("asset_id")
        asset = assets.get(asset_id) if asset_id else None
        duration = float(data.get("duration", 0.0))
        trim_start = float(data.get("trim_start", 0.0))
        fit_mode = data.get("fit_mode")

        return cls(
            id=data["id"],
            kind=MediaKind(data.get("kind", "video")),
            name=data.get("name", ""),
            start_time=float(data.get("start_time", 0.0)),
            duration=duration,
            trim_start=trim_start,
            trim_end=float(data.get("trim_end", trim_start + duration)),
            asset=asset,
            transform=ClipTransform.from_dict(data.get("transform", {})),
            filters=ClipFilters.from_dict(data.get("filters", {})),
            fit_mode=FitMode(fit_mode) if fit_mode else None,
        )


@dataclass
class Track:
    """An ordered lane of non-overlapping clips of one medium."""

    id: str
    kind: MediaKind
    clips: List[Clip] = field(default_factory=list)
    label: str = ""
    hidden: bool = False
    muted: bool = False

    @property
    def end_time(self) -> float:
        """End of the last clip, 0 for an empty track."""
        return max((clip.end_time for clip in self.clips), default=0.0)

    def clip_at(self, time: float) -> Optional[Clip]:
        """The clip covering a timeline instant, if any."""
        for clip in self.clips:
            if clip.contains(time):
                return clip
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "hidden": self.hidden,
            "muted": self.muted,
            "clips": [clip.to_dict() for clip in self.clips],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], assets: Optional[Dict[str, Asset]] = None) -> "Track":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            kind=MediaKind(data.get("kind", "video")),
            label=data.get("label", ""),
            hidden=data.get("hidden", False),
            muted=data.get("muted", False),
            clips=[Clip.from_dict(c, assets) for c in data.get("clips", [])],
        )


@dataclass
class Timeline:
    """The editable timeline: tracks in display order.

    Track 0 is drawn on top. The same value drives preview and export.
    """

    tracks: List[Track] = field(default_factory=list)

    @property
    def duration(self) -> float:
        """Timeline length in seconds over visible tracks (0 when empty)."""
        return max(
            (track.end_time for track in self.tracks if not track.hidden),
            default=0.0,
        )

    @property
    def assets(self) -> Dict[str, Asset]:
        """Assets referenced by any clip, keyed by id in first-use order."""
        found: Dict[str, Asset] = {}
        for track in self.tracks:
            for clip in track.clips:
                if clip.asset is not None and clip.asset.id not in found:
                    found[clip.asset.id] = clip.asset
        return found

    @property
    def clip_count(self) -> int:
        return sum(len(track.clips) for track in self.tracks)

    def get_track(self, track_id: str) -> Optional[Track]:
        for track in self.tracks:
            if track.id == track_id:
                return track
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a project document."""
        return {
            "assets": [asset.to_dict() for asset in self.assets.values()],
            "tracks": [track.to_dict() for track in self.tracks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Timeline":
        """Create from a project document."""
        assets = {a["id"]: Asset.from_dict(a) for a in data.get("assets", [])}
        return cls(tracks=[Track.from_dict(t, assets) for t in data.get("tracks", [])])
