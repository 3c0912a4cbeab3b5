"""Ping driver — a device whose only command answers ``"pong"``."""

from __future__ import annotations

from typing import Any

from botwire.plugins.base import Driver

drivers = ["ping"]


class Ping(Driver):
    def __init__(self, opts: dict[str, Any] | None = None) -> None:
        super().__init__(opts)
        self.commands = {"ping": self.ping}
        self.events = ["ping"]
        self.pings = 0

    def ping(self) -> str:
        self.pings += 1
        return "pong"

    def start(self) -> bool:
        return True

    def halt(self) -> bool:
        return True


def driver(opts: dict[str, Any]) -> Ping:
    return Ping(opts)
