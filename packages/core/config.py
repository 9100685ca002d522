"""Environment and path configuration for localcut.

Provides centralized configuration with sensible defaults.
All configuration is loaded from environment variables.

Usage:
    from packages.core import get_config

    config = get_config()
    print(f"Exports directory: {config.exports_dir}")
    print(f"ffmpeg binary: {config.ffmpeg_bin}")
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

from .errors import ConfigurationError


class Environment(Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class LocalCutConfig:
    """Application configuration.

    Immutable configuration object created from environment variables.

    Attributes:
        exports_dir: Default directory for exported files
        env: Current environment; production logs JSON by default
        log_level: Logging level
        debug: Debug mode, forces DEBUG logging
        ffmpeg_bin: ffmpeg executable used for decoding and encoding
        ffprobe_bin: ffprobe executable used for asset probing
        default_width: Default export width in pixels
        default_height: Default export height in pixels
        default_fps: Default export frame rate
        sample_rate: Mixdown sample rate in Hz
        channels: Mixdown channel count
    """

    # Paths
    exports_dir: Path

    # Environment
    env: Environment
    log_level: LogLevel
    debug: bool

    # Media tools
    ffmpeg_bin: str
    ffprobe_bin: str

    # Export defaults
    default_width: int
    default_height: int
    default_fps: float
    sample_rate: int
    channels: int

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env == Environment.PRODUCTION

    @property
    def effective_log_level(self) -> LogLevel:
        """Log level after applying debug mode."""
        return LogLevel.DEBUG if self.debug else self.log_level


def _find_project_root() -> Path:
    """Find project root by looking for packages/ directory.

    Falls back to current working directory if not found.
    """
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "packages").exists():
            return parent
    return Path.cwd()


def _get_env_path(var: str, default: Path) -> Path:
    """Get path from environment variable or use default.

    Relative paths are resolved against the project root.
    """
    value = os.environ.get(var)
    if value:
        path = Path(value)
        if not path.is_absolute():
            path = _find_project_root() / path
        return path
    return default


def _get_env_int(var: str, default: int) -> int:
    value = os.environ.get(var)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigurationError(var, f"expected an integer, got '{value}'")
    if parsed <= 0:
        raise ConfigurationError(var, f"must be positive, got {parsed}")
    return parsed


def _get_env_float(var: str, default: float) -> float:
    value = os.environ.get(var)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        raise ConfigurationError(var, f"expected a number, got '{value}'")
    if parsed <= 0:
        raise ConfigurationError(var, f"must be positive, got {parsed}")
    return parsed


@lru_cache(maxsize=1)
def get_config() -> LocalCutConfig:
    """Get the application configuration (singleton).

    Configuration is loaded from environment variables:
    - LOCALCUT_ENV: Environment (development/production/testing)
    - LOCALCUT_LOG_LEVEL: Logging level (DEBUG/INFO/WARNING/ERROR)
    - LOCALCUT_DEBUG: Enable debug mode (1/true/yes)
    - LOCALCUT_EXPORTS_DIR: Directory for exported files
    - LOCALCUT_FFMPEG: ffmpeg executable (default: ffmpeg)
    - LOCALCUT_FFPROBE: ffprobe executable (default: ffprobe)
    - LOCALCUT_WIDTH / LOCALCUT_HEIGHT: Default output size (1920x1080)
    - LOCALCUT_FPS: Default output frame rate (30)
    - LOCALCUT_SAMPLE_RATE: Mixdown sample rate (48000)
    - LOCALCUT_CHANNELS: Mixdown channel count (2)

    Returns:
        Immutable LocalCutConfig instance

    Raises:
        ConfigurationError: If a numeric variable is malformed
    """
    project_root = _find_project_root()

    env_str = os.environ.get("LOCALCUT_ENV", "development").lower()
    try:
        env = Environment(env_str)
    except ValueError:
        env = Environment.DEVELOPMENT

    log_str = os.environ.get("LOCALCUT_LOG_LEVEL", "INFO").upper()
    try:
        log_level = LogLevel(log_str)
    except ValueError:
        log_level = LogLevel.INFO

    debug_str = os.environ.get("LOCALCUT_DEBUG", "").lower()
    debug = debug_str in ("1", "true", "yes")

    return LocalCutConfig(
        exports_dir=_get_env_path("LOCALCUT_EXPORTS_DIR", project_root / "exports"),
        env=env,
        log_level=log_level,
        debug=debug,
        ffmpeg_bin=os.environ.get("LOCALCUT_FFMPEG", "ffmpeg"),
        ffprobe_bin=os.environ.get("LOCALCUT_FFPROBE", "ffprobe"),
        default_width=_get_env_int("LOCALCUT_WIDTH", 1920),
        default_height=_get_env_int("LOCALCUT_HEIGHT", 1080),
        default_fps=_get_env_float("LOCALCUT_FPS", 30.0),
        sample_rate=_get_env_int("LOCALCUT_SAMPLE_RATE", 48_000),
        channels=_get_env_int("LOCALCUT_CHANNELS", 2),
    )


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing when environment variables change
    between test cases.
    """
    get_config.cache_clear()
