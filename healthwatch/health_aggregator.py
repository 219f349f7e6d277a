"""Aggregates node and hardware diagnostics into one system status."""

from __future__ import annotations

import copy
import re
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable

from healthwatch.health_checker import value_to_json
from healthwatch.messages import (
    NODE_STATUS_UPDATE_RATE,
    DiagnosticStatus,
    DiagnosticStatusArray,
    ErrorLevel,
    ErrorType,
    HardwareStatus,
    NodeStatus,
    SystemClock,
    SystemStatus,
)
from healthwatch.params import ParamManager, ParamServer
from healthwatch.status_monitor import StatusMonitor


class HardwareLevel(IntEnum):
    """Severity levels used by hardware diagnostic reports."""

    OK = 0
    WARN = 1
    ERROR = 2
    STALE = 3


@dataclass
class KeyValue:
    """One named measurement of a hardware report."""

    key: str = ""
    value: str = ""


@dataclass
class HardwareDiagnostic:
    """Report for one piece of hardware."""

    name: str = ""
    level: int = HardwareLevel.OK
    message: str = ""
    hardware_id: str = ""
    values: list[KeyValue] = field(default_factory=list)


@dataclass
class DiagnosticArray:
    """A batch of hardware reports."""

    stamp: float = 0.0
    status: list[HardwareDiagnostic] = field(default_factory=list)


@dataclass
class Color:
    """RGBA colour with components in [0, 1]."""

    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 0.0


OVERLAY_ADD = 0


@dataclass
class OverlayText:
    """A text panel for display on a visualisation overlay."""

    action: int = OVERLAY_ADD
    width: int = 0
    height: int = 0
    left: int = 0
    top: int = 0
    text_size: float = 0.0
    bg_color: Color = field(default_factory=Color)
    fg_color: Color = field(default_factory=Color)
    text: str = ""


_DELETE_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r".*:",
        r".*/",
        r"\(.*\)",
        r"""[\[\]"\\(){}?.*+^$|!#%&'-=~`@;:,<> ]""",
    )
)

_PANEL_SIZE = 640

# level -> (panel column, foreground colour)
_LEVEL_STYLE = {
    ErrorLevel.OK: (0, (0.0, 0.0, 1.0, 1.0)),
    ErrorLevel.WARN: (1, (1.0, 1.0, 0.0, 1.0)),
    ErrorLevel.ERROR: (2, (1.0, 0.0, 0.0, 1.0)),
    ErrorLevel.FATAL: (3, (1.0, 1.0, 1.0, 1.0)),
}

_HARDWARE_LEVELS = {
    HardwareLevel.OK: ErrorLevel.OK,
    HardwareLevel.WARN: ErrorLevel.WARN,
    HardwareLevel.ERROR: ErrorLevel.ERROR,
    HardwareLevel.STALE: ErrorLevel.FATAL,
}

_PUBLISHED_LEVELS = (ErrorLevel.OK, ErrorLevel.WARN, ErrorLevel.ERROR, ErrorLevel.FATAL)


def change_to_key_format(node_name: str) -> str:
    """Drop a leading '/' and replace the remaining '/' with '_'."""
    if not node_name:
        raise ValueError("node name must not be empty")
    if node_name.startswith("/"):
        node_name = node_name[1:]
    return node_name.replace("/", "_")


def is_valid_graph_name(name: str) -> bool:
    """Whether name is a legal graph resource name (the empty name is legal)."""
    if not name:
        return True
    first, rest = name[0], name[1:]
    if not ((first.isascii() and first.isalpha()) or first in "/~"):
        return False
    return all(c.isascii() and (c.isalnum() or c in "/_") for c in rest)


def valid_name(orig: str) -> str | None:
    """Strip prefixes, parentheses and punctuation; None if still not a legal name."""
    changed = orig
    for pattern in _DELETE_PATTERNS:
        changed = pattern.sub("", changed)
    return changed if is_valid_graph_name(changed) else None


def generate_text(statuses: list[DiagnosticStatus]) -> str:
    """One description per line."""
    return "".join(status.description + "\n" for status in statuses)


def filter_node_status(status: SystemStatus, level: ErrorLevel) -> list[DiagnosticStatus]:
    """Diagnostics of activated nodes that have exactly the given level."""
    return [
        diag
        for node in status.node_status
        if node.node_activated
        for array in node.status
        for diag in array.status
        if diag.level == level
    ]


def generate_overlay_text(status: SystemStatus, level: ErrorLevel) -> OverlayText:
    """Build the overlay panel that lists diagnostics of one level."""
    text = OverlayText(
        action=OVERLAY_ADD,
        width=_PANEL_SIZE,
        height=_PANEL_SIZE,
        top=0,
        bg_color=Color(0.0, 0.0, 0.0, 0.7),
        text_size=20.0,
    )
    style = _LEVEL_STYLE.get(level)
    if style is not None:
        column, rgba = style
        text.left = _PANEL_SIZE * column
        text.fg_color = Color(*rgba)
        text.text = generate_text(filter_node_status(status, level))
    return text


def convert_hardware_level(level: int) -> ErrorLevel:
    """Map a hardware report level onto the diagnostic severity scale."""
    return _HARDWARE_LEVELS.get(level, ErrorLevel.UNDEFINED)


class HealthAggregator:
    """Merges node statuses and hardware reports and publishes the system status."""

    def __init__(
        self,
        server: ParamServer | None = None,
        *,
        node_name: str = "/health_aggregator",
        clock=None,
        system_status_publisher: Callable[[SystemStatus], None] | None = None,
        text_publisher: Callable[[ErrorLevel, OverlayText], None] | None = None,
    ) -> None:
        self._server = server if server is not None else ParamServer()
        self._clock = clock if clock is not None else SystemClock()
        self._system_status_publisher = system_status_publisher
        self._text_publisher = text_publisher
        self.hardware_diag_node = str(
            self._server.get("hardware_diag_node", "diagnostic_aggregator")
        )
        self.hardware_diag_rate = float(
            self._server.get(self.hardware_diag_node + "/pub_rate", 1.0)
        )
        self._param_manager = ParamManager(self._server)
        self._status_monitor = StatusMonitor(node_name, clock=self._clock)
        self._system_status = SystemStatus()
        self._detected_nodes: list[str] = []
        self._lock = threading.RLock()

    def update_node_status(self, node_status: NodeStatus) -> None:
        """Replace the stored status of the same node, or add it."""
        entry = copy.deepcopy(node_status)
        with self._lock:
            nodes = self._system_status.node_status
            for index, existing in enumerate(nodes):
                if existing.node_name == entry.node_name:
                    nodes[index] = entry
                    return
            nodes.append(entry)

    def publish_system_status(self) -> SystemStatus:
        """Publish the system status and one overlay text per level; return the status."""
        with self._lock:
            self._system_status.stamp = self._clock.now()
            self.update_node_status(self._status_monitor.monitor_status())
            self._system_status.available_nodes = list(self._detected_nodes)
            snapshot = copy.deepcopy(self._system_status)
        if self._system_status_publisher is not None:
            self._system_status_publisher(copy.deepcopy(snapshot))
        if self._text_publisher is not None:
            for level in _PUBLISHED_LEVELS:
                self._text_publisher(level, generate_overlay_text(snapshot, level))
        return snapshot

    def update_connection_status(self, nodes) -> None:
        """Record the names of nodes currently known to be running."""
        detected = list(nodes)
        with self._lock:
            self._detected_nodes = detected

    def node_status_callback(self, msg: NodeStatus) -> None:
        with self._lock:
            self.update_node_status(msg)
            timeout = 1.0 / NODE_STATUS_UPDATE_RATE * 2.0
            self._status_monitor.update_stamp(change_to_key_format(msg.node_name), timeout)

    def diagnostic_array_callback(self, msg: DiagnosticArray) -> None:
        with self._lock:
            hardware = self.convert(msg)
            if hardware is not None:
                self._system_status.hardware_status = hardware
            timeout = 1.0 / self.hardware_diag_rate * 2.0
            self._status_monitor.update_stamp(
                change_to_key_format(self.hardware_diag_node), timeout
            )

    def convert(self, msg: DiagnosticArray) -> list[HardwareStatus] | None:
        """Turn hardware reports into statuses; None when the batch is empty."""
        if not msg.status:
            return None
        result: list[HardwareStatus] = []
        for report in msg.status:
            ns = valid_name(report.name)
            if ns is None:
                continue
            level = convert_hardware_level(report.level)
            diag_array = DiagnosticStatusArray()
            for item in report.values:
                local_key = valid_name(item.key)
                if local_key is None:
                    continue
                global_key = ns + "/" + local_key
                self._param_manager.add_candidate(global_key)
                if self._param_manager.is_not_found_in(ns, local_key):
                    continue
                diag_array.status.append(
                    DiagnosticStatus(
                        stamp=msg.stamp,
                        key=global_key,
                        value=value_to_json(item.value),
                        description=global_key,
                        type=ErrorType.HARDWARE,
                        level=level,
                    )
                )
            if diag_array.status:
                result.append(
                    HardwareStatus(hardware_name=ns, stamp=msg.stamp, status=[diag_array])
                )
        return result