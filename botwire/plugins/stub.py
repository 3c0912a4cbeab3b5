"""Stub plugins — deterministic stand-ins registered under the ``test`` capability.

When test mode is active the connection and device factories build these
instead of the real plugin, then graft a success-returning stand-in onto the
stub for every public method the real plugin has and the stub lacks.  The
stubs record every lifecycle call in ``call_log`` so tests can assert on
exactly which operations were performed::

    conn = StubAdaptor({"name": "arduino"})
    conn.connect()
    assert conn.call_log[-1].method == "connect"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from botwire.plugins.base import Adaptor, Driver

adaptors = ["test"]
drivers = ["test"]


@dataclass
class StubCall:
    """A recorded lifecycle call for test assertions."""

    method: str
    args: tuple[Any, ...] = ()


class StubAdaptor(Adaptor):
    def __init__(self, opts: dict[str, Any] | None = None) -> None:
        super().__init__(opts)
        self.connected = False
        self.call_log: list[StubCall] = []

    def connect(self) -> bool:
        self.call_log.append(StubCall("connect"))
        self.connected = True
        return True

    def disconnect(self) -> bool:
        self.call_log.append(StubCall("disconnect"))
        self.connected = False
        return True


class StubDriver(Driver):
    def __init__(self, opts: dict[str, Any] | None = None) -> None:
        super().__init__(opts)
        self.started = False
        self.call_log: list[StubCall] = []

    def start(self) -> bool:
        self.call_log.append(StubCall("start"))
        self.started = True
        return True

    def halt(self) -> bool:
        self.call_log.append(StubCall("halt"))
        self.started = False
        return True


def adaptor(opts: dict[str, Any]) -> StubAdaptor:
    return StubAdaptor(opts)


def driver(opts: dict[str, Any]) -> StubDriver:
    return StubDriver(opts)
