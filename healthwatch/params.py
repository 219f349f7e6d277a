"""Parameter storage and threshold lookup for diagnostics."""

from __future__ import annotations

import copy
import threading
from typing import Any

from healthwatch.messages import ErrorLevel

_MISSING = object()


class ParamServer:
    """Hierarchical in-memory parameter store with '/'-separated names."""

    def __init__(self, params: dict[str, Any] | None = None) -> None:
        self._lock = threading.Lock()
        self._root: dict[str, Any] = {}
        for name, value in (params or {}).items():
            self.set(name, value)

    @staticmethod
    def _split(name: str) -> list[str]:
        parts = [part for part in name.split("/") if part]
        if not parts:
            raise ValueError(f"invalid parameter name: {name!r}")
        return parts

    def _lookup(self, name: str) -> Any:
        node: Any = self._root
        for part in self._split(name):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, name: str, default: Any = None) -> Any:
        """Return a copy of the value stored under name, or default."""
        with self._lock:
            value = self._lookup(name)
            return default if value is _MISSING else copy.deepcopy(value)

    def set(self, name: str, value: Any) -> None:
        parts = self._split(name)
        with self._lock:
            node = self._root
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[parts[-1]] = copy.deepcopy(value)

    def has(self, name: str) -> bool:
        with self._lock:
            return self._lookup(name) is not _MISSING


class ParamManager:
    """Caches the diagnostic parameters and announces new keys."""

    def __init__(self, server: ParamServer, namespace: str = "health_checker") -> None:
        self._server = server
        self._namespace = namespace
        self._param_lock = threading.Lock()
        self._key_lock = threading.Lock()
        self._candidates: set[str] = set()
        self._previous_keys: set[str] = set()
        self._params: Any = None
        self.refresh()

    def add_candidate(self, key: str) -> None:
        with self._key_lock:
            self._candidates.add(key)

    def is_not_found(self, key: str) -> bool:
        with self._param_lock:
            return not isinstance(self._params, dict) or key not in self._params

    def is_not_found_in(self, ns: str, key: str) -> bool:
        with self._param_lock:
            if not isinstance(self._params, dict) or ns not in self._params:
                return True
            section = self._params[ns]
            return not (isinstance(section, dict) and key in section)

    def params(self) -> Any:
        """Return the cached parameter tree."""
        with self._param_lock:
            return self._params

    def refresh(self) -> None:
        """Reload the parameter tree from the server."""
        fresh = self._server.get(self._namespace)
        with self._param_lock:
            self._params = fresh

    def publish_candidates(self) -> None:
        """Register keys seen for the first time under diag_reference."""
        with self._key_lock:
            keys = set(self._candidates)
            self._candidates.clear()
        for key in sorted(keys - self._previous_keys):
            self._server.set("diag_reference/" + key, "default")
        self._previous_keys |= keys


_LEVEL_NAMES = {
    ErrorLevel.WARN: "warn",
    ErrorLevel.ERROR: "error",
    ErrorLevel.FATAL: "fatal",
}


class ValueManager(ParamManager):
    """Threshold values: configured parameters take precedence over defaults."""

    def __init__(self, server: ParamServer, namespace: str = "health_checker") -> None:
        super().__init__(server, namespace)
        self._defaults: dict[tuple[str, str, ErrorLevel], float] = {}

    def set_default_value(
        self,
        key: str,
        thresh_type: str,
        warn_value: float,
        error_value: float,
        fatal_value: float,
    ) -> None:
        self._defaults[(key, thresh_type, ErrorLevel.WARN)] = warn_value
        self._defaults[(key, thresh_type, ErrorLevel.ERROR)] = error_value
        self._defaults[(key, thresh_type, ErrorLevel.FATAL)] = fatal_value

    def get_value(self, key: str, thresh_type: str, level: ErrorLevel) -> float | None:
        """Return the threshold, or None if the key or level is not handled.

        Raises KeyError when the key is configured but neither a parameter
        nor a default value exists for the threshold.
        """
        level_name = _LEVEL_NAMES.get(level)
        params = self.params()
        if level_name is None or not isinstance(params, dict) or key not in params:
            return None
        entry = params[key]
        thresholds = entry.get(thresh_type) if isinstance(entry, dict) else None
        if isinstance(thresholds, dict) and level_name in thresholds:
            return float(thresholds[level_name])
        return self._defaults[(key, thresh_type, ErrorLevel(level))]