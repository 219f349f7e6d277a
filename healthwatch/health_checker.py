"""Per-node health checks that grade values and rates and report node status."""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable

from healthwatch.diag_buffer import DiagBuffer
from healthwatch.messages import (
    BUFFER_DURATION,
    NODE_STATUS_UPDATE_RATE,
    DiagnosticStatus,
    DiagnosticStatusArray,
    ErrorLevel,
    ErrorType,
    NodeStatus,
    SystemClock,
)
from healthwatch.params import ParamServer, ValueManager
from healthwatch.rate_checker import RateChecker

MinMax = tuple[float, float]

_VALID_LEVELS = (ErrorLevel.OK, ErrorLevel.WARN, ErrorLevel.ERROR, ErrorLevel.FATAL)


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _dump_tree(tree: dict[str, Any]) -> str:
    def convert(node: Any) -> Any:
        if isinstance(node, dict):
            return {str(k): convert(v) for k, v in node.items()}
        return _format_scalar(node)

    return json.dumps(convert(tree), indent=4) + "\n"


def value_to_json(value: Any) -> str:
    """Serialise a value as a JSON object with a single string field "value"."""
    return _dump_tree({"value": value})


def _grade(exceeds: Callable[[ErrorLevel], bool]) -> ErrorLevel:
    for level in (ErrorLevel.FATAL, ErrorLevel.ERROR, ErrorLevel.WARN):
        if exceeds(level):
            return level
    return ErrorLevel.OK


class HealthChecker:
    """Collects diagnostics of one node and periodically publishes its status."""

    def __init__(
        self,
        server: ParamServer | None = None,
        *,
        node_name: str = "/health_checker",
        clock=None,
        publisher: Callable[[NodeStatus], None] | None = None,
    ) -> None:
        self._server = server if server is not None else ParamServer()
        self._clock = clock if clock is not None else SystemClock()
        self._node_name = node_name
        self._publisher = publisher
        self._value_manager = ValueManager(self._server)
        self._diag_buffers: dict[str, DiagBuffer] = {}
        self._rate_checkers: dict[str, RateChecker] = {}
        self._node_activated = False
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def __enter__(self) -> HealthChecker:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ----- publishing -------------------------------------------------

    def enable(self) -> None:
        """Start publishing the node status in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._publish_loop, daemon=True)
        self._thread.start()

    def close(self) -> None:
        """Stop the publishing thread, if any."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _publish_loop(self) -> None:
        period = round(1.0 / NODE_STATUS_UPDATE_RATE * 1e6) / 1e6
        deadline = time.monotonic()
        previous = self._clock.now()
        while not self._stop.is_set():
            deadline += period
            if self._stop.wait(max(0.0, deadline - time.monotonic())):
                break
            now = self._clock.now()
            if now == previous:
                # Time stands still (paused simulation): publish nothing.
                continue
            previous = now
            status = self.build_node_status()
            if self._publisher is not None:
                self._publisher(status)

    def build_node_status(self) -> NodeStatus:
        """Assemble the current status: rate results first, then buffered diagnostics."""
        now = self._clock.now()
        status = NodeStatus(
            node_name=self._node_name,
            node_activated=self._node_activated,
            stamp=now,
        )
        with self._lock:
            for key, checker in self._rate_checkers.items():
                result = checker.error_level_and_rate()
                if result is None:
                    continue
                level, rate = result
                diag = self._make_status(key, rate, checker.description)
                diag.stamp = now
                diag.level = level
                diag.type = ErrorType.UNEXPECTED_RATE
                status.status.append(DiagnosticStatusArray(status=[diag]))
            for key, buffer in self._diag_buffers.items():
                if key not in self._rate_checkers:
                    status.status.append(buffer.get_and_clear_data())
        return status

    # ----- checks -----------------------------------------------------

    def _make_status(self, key: str, value: Any, description: str) -> DiagnosticStatus:
        return DiagnosticStatus(
            stamp=self._clock.now(),
            key=key,
            value=value_to_json(value),
            description=description,
        )

    def _is_configured(self, key: str) -> bool:
        self._value_manager.add_candidate(key)
        return not self._value_manager.is_not_found(key)

    def _threshold(self, key: str, thresh_type: str, level: ErrorLevel) -> float:
        value = self._value_manager.get_value(key, thresh_type, level)
        if value is None:
            raise KeyError(f"no {thresh_type} threshold for {key!r}")
        return value

    def _add_new_buffer(self, key: str, error_type: ErrorType, description: str) -> bool:
        if key in self._diag_buffers:
            return False
        self._diag_buffers[key] = DiagBuffer(
            key, error_type, description, BUFFER_DURATION, clock=self._clock
        )
        return True

    def set_diag_status(self, status: DiagnosticStatus) -> ErrorLevel:
        """Buffer a diagnostic and return its level, or UNDEFINED if rejected."""
        if not self._is_configured(status.key):
            return ErrorLevel.UNDEFINED
        if status.level not in _VALID_LEVELS:
            return ErrorLevel.UNDEFINED
        with self._lock:
            self._add_new_buffer(status.key, status.type, status.description)
            self._diag_buffers[status.key].add_diag(status)
        return ErrorLevel(status.level)

    def check_true(
        self, key: str, value: bool, level: ErrorLevel, description: str
    ) -> ErrorLevel:
        if not self._is_configured(key):
            return ErrorLevel.UNDEFINED
        status = self._make_status(key, value, description)
        status.level = level
        status.type = ErrorType.INVALID_VALUE
        return self.set_diag_status(status)

    def check_min_value(
        self,
        key: str,
        value: float,
        warn_value: float,
        error_value: float,
        fatal_value: float,
        description: str,
    ) -> ErrorLevel:
        if not self._is_configured(key):
            return ErrorLevel.UNDEFINED
        self._value_manager.set_default_value(key, "min", warn_value, error_value, fatal_value)
        status = self._make_status(key, value, description)
        status.level = _grade(lambda level: value < self._threshold(key, "min", level))
        status.type = ErrorType.OUT_OF_RANGE
        return self.set_diag_status(status)

    def check_max_value(
        self,
        key: str,
        value: float,
        warn_value: float,
        error_value: float,
        fatal_value: float,
        description: str,
    ) -> ErrorLevel:
        if not self._is_configured(key):
            return ErrorLevel.UNDEFINED
        self._value_manager.set_default_value(key, "max", warn_value, error_value, fatal_value)
        status = self._make_status(key, value, description)
        status.level = _grade(lambda level: value > self._threshold(key, "max", level))
        status.type = ErrorType.OUT_OF_RANGE
        return self.set_diag_status(status)

    def check_range(
        self,
        key: str,
        value: float,
        warn_value: MinMax,
        error_value: MinMax,
        fatal_value: MinMax,
        description: str,
    ) -> ErrorLevel:
        if not self._is_configured(key):
            return ErrorLevel.UNDEFINED
        self._value_manager.set_default_value(
            key, "min", warn_value[0], error_value[0], fatal_value[0]
        )
        self._value_manager.set_default_value(
            key, "max", warn_value[1], error_value[1], fatal_value[1]
        )
        status = self._make_status(key, value, description)
        status.level = _grade(
            lambda level: value < self._threshold(key, "min", level)
            or value > self._threshold(key, "max", level)
        )
        status.type = ErrorType.OUT_OF_RANGE
        return self.set_diag_status(status)

    def check_value(
        self,
        key: str,
        value: Any,
        check_func: Callable[[Any], ErrorLevel],
        value_json_func: Callable[[Any], dict[str, Any]],
        description: str,
    ) -> ErrorLevel:
        """Grade a value with a custom function and store its JSON form."""
        if not self._is_configured(key):
            return ErrorLevel.UNDEFINED
        level = check_func(value)
        status = DiagnosticStatus(
            stamp=self._clock.now(),
            key=key,
            value=_dump_tree(value_json_func(value)),
            description=description,
            type=ErrorType.INVALID_VALUE,
            level=level,
        )
        return self.set_diag_status(status)

    def check_rate(
        self,
        key: str,
        warn_rate: float,
        error_rate: float,
        fatal_rate: float,
        description: str,
    ) -> None:
        """Count one occurrence of a periodic event."""
        if not self._is_configured(key):
            return
        with self._lock:
            if key not in self._diag_buffers or key not in self._rate_checkers:
                self._value_manager.set_default_value(
                    key, "rate", warn_rate, error_rate, fatal_rate
                )
                self._rate_checkers[key] = RateChecker(
                    BUFFER_DURATION,
                    warn_rate,
                    error_rate,
                    fatal_rate,
                    description,
                    clock=self._clock,
                )
            checker = self._rate_checkers[key]
            checker.set_rate(
                self._threshold(key, "rate", ErrorLevel.WARN),
                self._threshold(key, "rate", ErrorLevel.ERROR),
                self._threshold(key, "rate", ErrorLevel.FATAL),
            )
            checker.check()
            self._add_new_buffer(key, ErrorType.UNEXPECTED_RATE, description)

    # ----- activation -------------------------------------------------

    def node_activate(self) -> None:
        with self._lock:
            self._node_activated = True

    def node_deactivate(self) -> None:
        with self._lock:
            self._node_activated = False

    def node_activated(self) -> bool:
        return self._node_activated