"""Loopback adaptor — a connection that talks to nothing.

Useful for robots whose devices need no real transport, and in tests.
"""

from __future__ import annotations

from typing import Any

from botwire.plugins.base import Adaptor

adaptors = ["loopback"]


class Loopback(Adaptor):
    def __init__(self, opts: dict[str, Any] | None = None) -> None:
        super().__init__(opts)
        self.connected = False

    def connect(self) -> bool:
        self.connected = True
        return True

    def disconnect(self) -> bool:
        self.connected = False
        return True


def adaptor(opts: dict[str, Any]) -> Loopback:
    return Loopback(opts)
