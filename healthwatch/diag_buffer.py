"""Time-limited buffer of diagnostic observations for one key."""

from __future__ import annotations

import threading
from dataclasses import replace

from healthwatch.messages import (
    DiagnosticStatus,
    DiagnosticStatusArray,
    ErrorLevel,
    ErrorType,
    SystemClock,
)

_ALL_LEVELS = (
    ErrorLevel.FATAL,
    ErrorLevel.ERROR,
    ErrorLevel.WARN,
    ErrorLevel.OK,
    ErrorLevel.UNDEFINED,
)
_GRADED_LEVELS = _ALL_LEVELS[:-1]


class DiagBuffer:
    """Keeps recent diagnostics, grouped by level, for a limited duration."""

    def __init__(
        self,
        key: str,
        error_type: ErrorType,
        description: str,
        buffer_duration: float,
        clock=None,
    ) -> None:
        self.key = key
        self.type = error_type
        self.description = description
        self._buffer_duration = buffer_duration
        self._clock = clock if clock is not None else SystemClock()
        self._buffer: dict[int, list[DiagnosticStatus]] = {}
        self._lock = threading.Lock()

    def _update(self) -> None:
        now = self._clock.now()
        for level in _ALL_LEVELS:
            self._buffer[level] = [
                status
                for status in self._buffer.get(level, [])
                if status.stamp + self._buffer_duration > now
            ]

    def add_diag(self, status: DiagnosticStatus) -> None:
        with self._lock:
            self._buffer.setdefault(status.level, []).append(replace(status))
            self._update()

    def get_and_clear_data(self) -> DiagnosticStatusArray:
        """Return all live diagnostics oldest first and empty the buffer."""
        with self._lock:
            self._update()
            collected = [status for level in _ALL_LEVELS for status in self._buffer[level]]
            self._buffer.clear()
        return DiagnosticStatusArray(status=sorted(collected, key=lambda s: s.stamp))

    def error_level(self) -> ErrorLevel:
        """Most severe level among live diagnostics; OK when there are none."""
        with self._lock:
            self._update()
            for level in _GRADED_LEVELS:
                if self._buffer[level]:
                    return level
        return ErrorLevel.OK