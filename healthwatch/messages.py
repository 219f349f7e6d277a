"""Diagnostic message types, severity levels and time sources."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import IntEnum

BUFFER_DURATION = 0.5
NODE_STATUS_UPDATE_RATE = 10.0
SYSTEM_UPDATE_RATE = 30.0


class ErrorLevel(IntEnum):
    """Seriousness of an abnormality."""

    UNDEFINED = 0
    OK = 1
    WARN = 2
    ERROR = 3
    FATAL = 4


class ErrorType(IntEnum):
    """Kind of an abnormality."""

    UNDEFINED = 0
    OUT_OF_RANGE = 1
    UNEXPECTED_RATE = 2
    INVALID_VALUE = 3
    HARDWARE = 4


@dataclass
class DiagnosticStatus:
    """One diagnostic observation for a single key."""

    stamp: float = 0.0
    key: str = ""
    value: str = ""
    description: str = ""
    type: ErrorType = ErrorType.UNDEFINED
    level: ErrorLevel = ErrorLevel.UNDEFINED


@dataclass
class DiagnosticStatusArray:
    """A group of diagnostic observations."""

    status: list[DiagnosticStatus] = field(default_factory=list)


@dataclass
class NodeStatus:
    """Diagnostics reported by one node."""

    node_name: str = ""
    node_activated: bool = False
    stamp: float = 0.0
    status: list[DiagnosticStatusArray] = field(default_factory=list)


@dataclass
class HardwareStatus:
    """Diagnostics reported for one piece of hardware."""

    hardware_name: str = ""
    stamp: float = 0.0
    status: list[DiagnosticStatusArray] = field(default_factory=list)


@dataclass
class TopicStatistics:
    """A publisher/subscriber connection on a topic."""

    topic: str = ""
    node_pub: str = ""
    node_sub: str = ""


@dataclass
class SystemStatus:
    """Aggregated status of the whole system."""

    stamp: float = 0.0
    node_status: list[NodeStatus] = field(default_factory=list)
    hardware_status: list[HardwareStatus] = field(default_factory=list)
    available_nodes: list[str] = field(default_factory=list)
    topic_statistics: list[TopicStatistics] = field(default_factory=list)
    detect_too_match_warning: bool = False


class SystemClock:
    """Wall-clock time source in seconds."""

    def now(self) -> float:
        return time.time()


class ManualClock:
    """Time source that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._lock = threading.Lock()
        self._now = float(start)

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward and return the new time."""
        with self._lock:
            self._now += float(seconds)
            return self._now

    def set(self, seconds: float) -> None:
        with self._lock:
            self._now = float(seconds)