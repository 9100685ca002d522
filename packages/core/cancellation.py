"""Cooperative cancellation token for long-running exports.

The caller owns the signal and may trip it from any thread (a UI callback,
a signal handler, another task). Workers poll it at safe points only.

Usage:
    signal = AbortSignal()
    task = asyncio.create_task(export_timeline(timeline, ExportOptions(abort_signal=signal)))
    ...
    signal.abort("user pressed cancel")
"""

import threading
from typing import Optional

from .errors import ExportCancelledError


class AbortSignal:
    """Thread-safe, one-shot cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def abort(self, reason: Optional[str] = None) -> None:
        """Trip the signal. Later calls keep the first reason."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def throw_if_aborted(self) -> None:
        """Raise ExportCancelledError if the signal has been tripped."""
        if self._event.is_set():
            raise ExportCancelledError(self._reason)

    @classmethod
    def aborted_signal(cls, reason: Optional[str] = None) -> "AbortSignal":
        """Create a signal that is already tripped."""
        signal = cls()
        signal.abort(reason)
        return signal
