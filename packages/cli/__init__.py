"""localcut CLI - export and inspect timeline projects."""

__version__ = "0.1.0"
