"""Shared pytest fixtures for the botwire test suite."""

from __future__ import annotations

import asyncio
import types
from typing import Any, Generator

import pytest

from botwire import utils
from botwire.config import Settings, override_settings
from botwire.plugins.base import Adaptor, Driver
from botwire.plugins.registry import CapabilityRegistry, override_registry


# ---------------------------------------------------------------------------
# Recording plugins — append lifecycle steps to a shared timeline
# ---------------------------------------------------------------------------


class RecordingAdaptor(Adaptor):
    """Adaptor whose lifecycle calls land in ``timeline``.

    Connection options: ``delay`` (seconds to sleep inside connect), ``fail``
    (raise from connect).
    """

    def __init__(self, opts: dict[str, Any], timeline: list[str]) -> None:
        super().__init__(opts)
        self.timeline = timeline

    async def connect(self) -> bool:
        self.timeline.append(f"connect:{self.name}:begin")
        await asyncio.sleep(self.details.get("delay", 0))
        if self.details.get("fail"):
            raise RuntimeError(f"{self.name} refused to connect")
        self.timeline.append(f"connect:{self.name}:end")
        return True

    async def disconnect(self) -> bool:
        self.timeline.append(f"disconnect:{self.name}:begin")
        await asyncio.sleep(0)
        self.timeline.append(f"disconnect:{self.name}:end")
        return True

    def reset(self) -> str:
        return "reset"


class RecordingDriver(Driver):
    """Driver whose lifecycle calls land in ``timeline``.

    Device options: ``delay`` (seconds to sleep inside start and halt),
    ``fail`` (raise from start).
    """

    def __init__(self, opts: dict[str, Any], timeline: list[str]) -> None:
        super().__init__(opts)
        self.timeline = timeline
        self.commands = {"toggle": self.toggle}

    async def start(self) -> bool:
        self.timeline.append(f"start:{self.name}:begin")
        await asyncio.sleep(self.details.get("delay", 0))
        if self.details.get("fail"):
            raise RuntimeError(f"{self.name} did not start")
        self.timeline.append(f"start:{self.name}:end")
        return True

    async def halt(self) -> bool:
        self.timeline.append(f"halt:{self.name}:begin")
        await asyncio.sleep(self.details.get("delay", 0))
        self.timeline.append(f"halt:{self.name}:end")
        return True

    def toggle(self) -> bool:
        return True

    async def brightness(self, level: int) -> int:
        return level


def make_recording_plugin(timeline: list[str]) -> types.ModuleType:
    module = types.ModuleType("recording_plugin")
    module.adaptors = ["recording"]  # type: ignore[attr-defined]
    module.drivers = ["recording"]  # type: ignore[attr-defined]
    module.adaptor = lambda opts: RecordingAdaptor(opts, timeline)  # type: ignore[attr-defined]
    module.driver = lambda opts: RecordingDriver(opts, timeline)  # type: ignore[attr-defined]
    return module


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def interrupts(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Record interrupt requests instead of raising SIGINT in the test process."""
    calls: list[str] = []
    monkeypatch.setattr(utils, "request_interrupt", lambda: calls.append("SIGINT"))
    return calls


@pytest.fixture(autouse=True)
def settings() -> Generator[Settings, None, None]:
    settings = Settings()
    override_settings(settings)
    yield settings
    override_settings(None)


@pytest.fixture(autouse=True)
def registry() -> Generator[CapabilityRegistry, None, None]:
    registry = CapabilityRegistry()
    override_registry(registry)
    yield registry
    override_registry(None)


# ---------------------------------------------------------------------------
# Recording plugin wiring
# ---------------------------------------------------------------------------


@pytest.fixture
def timeline() -> list[str]:
    return []


@pytest.fixture
def recording_registry(registry: CapabilityRegistry, timeline: list[str]) -> CapabilityRegistry:
    registry.register_module("recording_plugin", make_recording_plugin(timeline))
    return registry
