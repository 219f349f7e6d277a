"""Finds the root causes of warnings from the topic dependency graph."""

from __future__ import annotations

import copy
import re
from pathlib import Path
from typing import Callable, Iterable, Iterator

from healthwatch.messages import ErrorLevel, SystemStatus, TopicStatistics

_OVER_WARN = frozenset({ErrorLevel.WARN, ErrorLevel.ERROR, ErrorLevel.FATAL})
_OVER_ERROR = frozenset({ErrorLevel.ERROR, ErrorLevel.FATAL})

_UNQUOTED_ID = re.compile(
    r"(?:[a-zA-Z\x80-\xff_][a-zA-Z\x80-\xff_0-9]*|-?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?))\Z"
)


def _levels(entries: Iterable) -> Iterator[int]:
    for entry in entries:
        for array in entry.status:
            for diag in array.status:
                yield diag.level


def count_warn(msg: SystemStatus) -> int:
    """Number of WARN diagnostics over all nodes and hardware."""
    return sum(
        1
        for entries in (msg.node_status, msg.hardware_status)
        for level in _levels(entries)
        if level == ErrorLevel.WARN
    )


def find_warning_nodes(sys_status: SystemStatus) -> list[str]:
    """Names of nodes with at least one diagnostic of WARN or worse."""
    found: list[str] = []
    for node in sys_status.node_status:
        if node.node_name in found:
            continue
        if any(level in _OVER_WARN for level in _levels([node])):
            found.append(node.node_name)
    return found


def find_error_nodes(sys_status: SystemStatus) -> list[str]:
    """Names of running nodes with at least one diagnostic of ERROR or worse."""
    found: list[str] = []
    for node in sys_status.node_status:
        name = node.node_name
        if name in found or name not in sys_status.available_nodes:
            continue
        if any(level in _OVER_ERROR for level in _levels([node])):
            found.append(name)
    return found


def _escape_dot(text: str) -> str:
    if _UNQUOTED_ID.match(text):
        return text
    return '"' + text.replace('"', '\\"') + '"'


class HealthAnalyzer:
    """Keeps a subscriber-to-publisher graph and reduces statuses to root causes."""

    def __init__(
        self,
        *,
        warn_nodes_count_threshold: int = 30,
        publisher: Callable[[SystemStatus], None] | None = None,
    ) -> None:
        self.warn_nodes_count_threshold = warn_nodes_count_threshold
        self._publisher = publisher
        self._names: list[str] = []
        self._edges: list[tuple[int, int]] = []
        self._out: list[list[int]] = []

    def _add_vertex(self, name: str) -> int:
        self._names.append(name)
        self._out.append([])
        return len(self._names) - 1

    def target_node(self, name: str) -> int | None:
        """Vertex index of the named node, or None if it is not in the graph."""
        for index, vertex_name in enumerate(self._names):
            if vertex_name == name:
                return index
        return None

    def add_depend(self, statistics: TopicStatistics) -> None:
        """Add an edge from the subscribing node to the publishing node."""
        if statistics.node_pub == statistics.node_sub:
            return
        pub = self.target_node(statistics.node_pub)
        sub = self.target_node(statistics.node_sub)
        if pub is None:
            pub = self._add_vertex(statistics.node_pub)
        if sub is None:
            sub = self._add_vertex(statistics.node_sub)
        self._edges.append((sub, pub))
        self._out[sub].append(pub)

    def generate_depend_graph(self, status: SystemStatus) -> None:
        """Rebuild the graph from the topic statistics of a system status."""
        self._names = []
        self._edges = []
        self._out = []
        for statistics in status.topic_statistics:
            self.add_depend(statistics)

    def dependencies(self, name: str) -> list[str]:
        """Names of the nodes the named node subscribes to, in edge order."""
        vertex = self.target_node(name)
        if vertex is None:
            raise KeyError(name)
        return [self._names[target] for target in self._out[vertex]]

    def find_root_nodes(self, target_nodes: list[str]) -> list[str]:
        """Targets in the graph that depend on no other target."""
        roots: list[str] = []
        for node in target_nodes:
            if self.target_node(node) is None:
                continue
            if not any(dep in target_nodes for dep in self.dependencies(node)):
                roots.append(node)
        return roots

    def filter_system_status(self, status: SystemStatus) -> SystemStatus:
        """Keep only node statuses of root warning nodes and flag warning floods."""
        filtered = copy.deepcopy(status)
        filtered.detect_too_match_warning = (
            count_warn(status) >= self.warn_nodes_count_threshold
        )
        roots = self.find_root_nodes(find_warning_nodes(status))
        filtered.node_status = [
            copy.deepcopy(node) for node in status.node_status if node.node_name in roots
        ]
        return filtered

    def system_status_callback(self, msg: SystemStatus) -> SystemStatus:
        """Rebuild the graph, publish the summary and return it."""
        self.generate_depend_graph(msg)
        summary = self.filter_system_status(msg)
        if self._publisher is not None:
            self._publisher(summary)
        return summary

    def to_dot(self) -> str:
        """The dependency graph in Graphviz format, labelled by node name."""
        lines = ["digraph G {"]
        lines.extend(
            f"{index}[label={_escape_dot(name)}];" for index, name in enumerate(self._names)
        )
        lines.extend(f"{source}->{target} ;" for source, target in self._edges)
        lines.append("}")
        return "\n".join(lines) + "\n"

    def write_dot(self, path) -> None:
        Path(path).write_text(self.to_dot(), encoding="utf-8")