"""Fans out received system statuses to registered callbacks."""

from __future__ import annotations

import copy
from typing import Callable

from healthwatch.messages import SystemStatus


class SystemStatusSubscriber:
    """Calls every registered callback with its own copy of each system status."""

    def __init__(self) -> None:
        self._callbacks: list[Callable[[SystemStatus], None]] = []

    def add_callback(self, func: Callable[[SystemStatus], None]) -> None:
        self._callbacks.append(func)

    def system_status_callback(self, msg: SystemStatus) -> None:
        for func in self._callbacks:
            func(copy.deepcopy(msg))