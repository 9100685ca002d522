"""Core package - shared utilities, types, and configuration.

This package provides common functionality used across all localcut packages:
- Configuration management
- Shared type definitions
- Protocol interfaces for media collaborators
- Custom exceptions
- Cooperative cancellation
- Logging setup
- Utility functions

Example usage:
    from packages.core import AbortSignal, ExportCancelledError, get_config

    config = get_config()
    print(f"Default size: {config.default_width}x{config.default_height}")

    signal = AbortSignal()
    signal.abort("user cancelled")
    signal.throw_if_aborted()  # raises ExportCancelledError
"""

# Configuration
from .config import (
    Environment,
    LocalCutConfig,
    LogLevel,
    clear_config_cache,
    get_config,
)

# Types
from .types import (
    ClipFilters,
    ClipTransform,
    ExportState,
    FitMode,
    MediaKind,
    Rect,
)

# Protocols
from .protocols import (
    AudioDecoder,
    EncoderProbe,
    FrameRenderer,
    LoadedSource,
    MediaMuxer,
    ProgressCallback,
)

# Errors
from .errors import (
    ConfigurationError,
    EncodeError,
    ExportCancelledError,
    ExportError,
    LocalCutError,
    MediaError,
    NoEncodableFormatError,
    RenderError,
    SourceDecodeError,
    SourceLoadError,
    TimelineError,
    TimelineValidationError,
    ValidationError,
)

# Cancellation
from .cancellation import AbortSignal

# Logging
from .observability import configure_logging

# Utilities
from .utils import (
    clamp,
    ensure_dir,
    format_duration,
    frame_count,
    parse_color,
    safe_filename,
    sample_count,
    seconds_to_sample,
)

__all__ = [
    # Config
    "Environment",
    "LogLevel",
    "LocalCutConfig",
    "get_config",
    "clear_config_cache",
    # Types
    "MediaKind",
    "FitMode",
    "ExportState",
    "ClipTransform",
    "ClipFilters",
    "Rect",
    # Protocols
    "LoadedSource",
    "AudioDecoder",
    "FrameRenderer",
    "EncoderProbe",
    "MediaMuxer",
    "ProgressCallback",
    # Errors
    "LocalCutError",
    "ConfigurationError",
    "TimelineError",
    "TimelineValidationError",
    "ValidationError",
    "MediaError",
    "SourceLoadError",
    "SourceDecodeError",
    "ExportError",
    "NoEncodableFormatError",
    "RenderError",
    "EncodeError",
    "ExportCancelledError",
    # Cancellation
    "AbortSignal",
    # Logging
    "configure_logging",
    # Utils
    "clamp",
    "frame_count",
    "sample_count",
    "seconds_to_sample",
    "parse_color",
    "safe_filename",
    "format_duration",
    "ensure_dir",
]
