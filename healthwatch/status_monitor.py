"""Watches when nodes last reported and flags those that fell silent."""

from __future__ import annotations

import threading

from healthwatch.messages import (
    DiagnosticStatus,
    DiagnosticStatusArray,
    ErrorLevel,
    ErrorType,
    NodeStatus,
    SystemClock,
)


class TimeoutManager:
    """Elapsed time since a start stamp, compared with a limit."""

    def __init__(self, timeout: float, start_time: float) -> None:
        self.timeout = timeout
        self.start_time = start_time

    def duration(self, current: float) -> float:
        return current - self.start_time

    def is_over_limit(self, current: float) -> bool:
        return self.duration(current) > self.timeout


class StatusMonitor:
    """Tracks the last report time of named sources."""

    def __init__(self, node_name: str = "/health_aggregator", clock=None) -> None:
        self._node_name = node_name
        self._clock = clock if clock is not None else SystemClock()
        self._managers: dict[str, TimeoutManager] = {}
        self._lock = threading.Lock()

    def update_stamp(self, name: str, timeout: float) -> None:
        """Restart the timer of a source; empty names are ignored."""
        if not name:
            return
        with self._lock:
            self._managers[name] = TimeoutManager(timeout, self._clock.now())

    def monitor_status(self) -> NodeStatus:
        """One diagnostic per source, ERROR when it has been silent too long."""
        current = self._clock.now()
        status = NodeStatus()
        with self._lock:
            managers = sorted(self._managers.items())
        for name, manager in managers:
            diag = DiagnosticStatus(
                stamp=manager.start_time,
                key=f"{name}_node_status_rate_slow",
                value=f"{manager.duration(current):g}",
                description=f"{name} node_status rate slow",
                type=ErrorType.UNEXPECTED_RATE,
                level=ErrorLevel.ERROR if manager.is_over_limit(current) else ErrorLevel.OK,
            )
            status.status.append(DiagnosticStatusArray(status=[diag]))
        status.stamp = self._clock.now()
        status.node_name = self._node_name
        status.node_activated = True
        return status