"""Custom exception classes for localcut.

Exception Hierarchy:
    LocalCutError (base)
    ├── ConfigurationError
    ├── TimelineError
    │   ├── TimelineValidationError
    │   └── ValidationError
    ├── MediaError
    │   ├── SourceLoadError
    │   └── SourceDecodeError
    └── ExportError
        ├── NoEncodableFormatError
        ├── RenderError
        ├── EncodeError
        └── ExportCancelledError
"""

from typing import Any, Optional


class LocalCutError(Exception):
    """Base exception for all localcut errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured output."""
        result: dict[str, Any] = {
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ============ Configuration Errors ============


class ConfigurationError(LocalCutError):
    """Error in application configuration."""

    def __init__(self, config_key: str, reason: str):
        super().__init__(
            message=f"Invalid configuration for {config_key}: {reason}",
            code="configuration_error",
            details={"config_key": config_key, "reason": reason},
        )


# ============ Timeline Errors ============


class TimelineError(LocalCutError):
    """Base class for timeline model errors."""

    pass


class TimelineValidationError(TimelineError):
    """Timeline model breaks one or more structural invariants."""

    def __init__(self, errors: list[str], track_id: Optional[str] = None):
        scope = f"Track '{track_id}'" if track_id else "Timeline"
        super().__init__(
            message=f"{scope} validation failed: {'; '.join(errors)}",
            code="timeline_validation_error",
            details={"track_id": track_id, "validation_errors": errors},
        )
        self.track_id = track_id
        self.validation_errors = errors


class ValidationError(TimelineError):
    """Export request rejected before any resource was touched."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Nothing to export: {reason}",
            code="validation_error",
            details={"reason": reason},
        )
        self.reason = reason


# ============ Media Errors ============


class MediaError(LocalCutError):
    """Base class for source media errors."""

    pass


class SourceLoadError(MediaError):
    """Failed to open an asset for the export."""

    def __init__(self, asset_id: str, reason: str):
        super().__init__(
            message=f"Failed to load asset '{asset_id}': {reason}",
            code="source_load_error",
            details={"asset_id": asset_id, "reason": reason},
        )
        self.asset_id = asset_id


class SourceDecodeError(MediaError):
    """Failed to decode samples or a frame from an asset."""

    def __init__(self, asset_id: str, reason: str, timestamp: Optional[float] = None):
        message = f"Failed to decode asset '{asset_id}': {reason}"
        if timestamp is not None:
            message = f"Failed to decode asset '{asset_id}' at {timestamp:.3f}s: {reason}"
        super().__init__(
            message=message,
            code="source_decode_error",
            details={"asset_id": asset_id, "reason": reason, "timestamp": timestamp},
        )
        self.asset_id = asset_id
        self.timestamp = timestamp


# ============ Export Errors ============


class ExportError(LocalCutError):
    """Base class for errors that abort an export."""

    pass


class NoEncodableFormatError(ExportError):
    """No candidate container yields an encodable video codec."""

    def __init__(self, containers: list[str], width: int, height: int):
        super().__init__(
            message=(
                "No encodable video codec found for the requested containers "
                f"({'/'.join(containers)}) at {width}x{height}"
            ),
            code="no_encodable_format",
            details={"containers": containers, "width": width, "height": height},
        )
        self.containers = containers


class RenderError(ExportError):
    """Compositing a frame failed."""

    def __init__(self, reason: str, frame_index: Optional[int] = None):
        message = f"Render failed: {reason}"
        if frame_index is not None:
            message = f"Render failed at frame {frame_index}: {reason}"
        super().__init__(
            message=message,
            code="render_error",
            details={"reason": reason, "frame_index": frame_index},
        )
        self.frame_index = frame_index


class EncodeError(ExportError):
    """Encoder or muxer rejected input or failed to finalize."""

    def __init__(self, reason: str, container: Optional[str] = None):
        message = f"Encode failed: {reason}"
        if container:
            message = f"Encode failed ({container}): {reason}"
        super().__init__(
            message=message,
            code="encode_error",
            details={"reason": reason, "container": container},
        )


class ExportCancelledError(ExportError):
    """The caller's abort signal was observed."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            message="Export cancelled" + (f": {reason}" if reason else ""),
            code="export_cancelled",
            details={"reason": reason},
        )
        self.reason = reason
