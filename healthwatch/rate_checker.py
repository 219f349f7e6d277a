"""Sliding-window rate measurement with severity thresholds."""

from __future__ import annotations

import threading

from healthwatch.messages import ErrorLevel, SystemClock

LevelRatePair = tuple[ErrorLevel, float]


class RateChecker:
    """Counts events in a time window and grades the resulting rate."""

    def __init__(
        self,
        buffer_duration: float,
        warn_rate: float,
        error_rate: float,
        fatal_rate: float,
        description: str,
        clock=None,
    ) -> None:
        self.description = description
        self._clock = clock if clock is not None else SystemClock()
        self._buffer_duration = buffer_duration
        self._warn_rate = warn_rate
        self._error_rate = error_rate
        self._fatal_rate = fatal_rate
        self._start_time = self._clock.now()
        self._data: list[float] = []
        self._lock = threading.Lock()

    def _update(self) -> None:
        with self._lock:
            now = self._clock.now()
            self._data = [t for t in self._data if t + self._buffer_duration > now]

    def check(self) -> None:
        """Record one event at the current time."""
        self._update()
        with self._lock:
            self._data.append(self._clock.now())

    def rate(self) -> float | None:
        """Events per second, or None until one full window has passed."""
        if self._clock.now() < self._start_time + self._buffer_duration:
            return None
        self._update()
        with self._lock:
            return len(self._data) / self._buffer_duration

    def error_level_and_rate(self) -> LevelRatePair | None:
        rate = self.rate()
        if rate is None:
            return None
        with self._lock:
            if rate < self._fatal_rate:
                level = ErrorLevel.FATAL
            elif rate < self._error_rate:
                level = ErrorLevel.ERROR
            elif rate < self._warn_rate:
                level = ErrorLevel.WARN
            else:
                level = ErrorLevel.OK
        return level, rate

    def error_level(self) -> ErrorLevel | None:
        result = self.error_level_and_rate()
        return None if result is None else result[0]

    def set_rate(self, warn_rate: float, error_rate: float, fatal_rate: float) -> None:
        self._update()
        with self._lock:
            self._warn_rate = warn_rate
            self._error_rate = error_rate
            self._fatal_rate = fatal_rate