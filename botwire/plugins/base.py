"""Plugin layer — Adaptor and Driver base classes.

A plugin package (e.g. ``botwire_firmata``) advertises what it provides with
module-level attributes and factory functions::

    adaptors = ["firmata"]
    drivers = ["led", "button"]
    dependencies = ["botwire_gpio"]

    def adaptor(opts):
        return FirmataAdaptor(opts)

    def driver(opts):
        return {"led": Led, "button": Button}[opts["driver"]](opts)

Adaptors and drivers returned by those factories should subclass
:class:`Adaptor` / :class:`Driver`, which handle the bookkeeping every
connection or device shares (name, owning robot, option echo, JSON export).

Lifecycle methods may be plain methods or coroutines; the orchestrator awaits
whatever they return.  Failures are signalled by raising.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from botwire.orchestration.robot import Robot

# Option keys consumed by the base classes rather than echoed as details.
_ADAPTOR_RESERVED = ("robot", "name", "adaptor", "module", "events")
_DRIVER_RESERVED = (
    "robot",
    "name",
    "connection",
    "driver",
    "module",
    "events",
    "device",
    "pin",
)


class Adaptor(ABC):
    """Base class for connection (transport) plugins.

    Subclasses must implement :meth:`connect` and :meth:`disconnect`.
    """

    def __init__(self, opts: dict[str, Any] | None = None) -> None:
        opts = opts or {}
        self.name: str | None = opts.get("name")
        self.robot: Robot | None = opts.get("robot")
        self.events: list[str] = list(opts.get("events", []))
        self.details: dict[str, Any] = {
            key: value for key, value in opts.items() if key not in _ADAPTOR_RESERVED
        }

    @property
    def host(self) -> Any:
        return self.details.get("host")

    @property
    def port(self) -> Any:
        return self.details.get("port")

    @abstractmethod
    def connect(self) -> Any:
        """Open the transport.  Raise to report failure."""

    @abstractmethod
    def disconnect(self) -> Any:
        """Close the transport."""

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "adaptor": type(self).__name__,
            "details": dict(self.details),
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class Driver(ABC):
    """Base class for device (peripheral) plugins.

    Subclasses must implement :meth:`start` and :meth:`halt`.  Commands a
    driver exposes to callers go into ``self.commands``.
    """

    def __init__(self, opts: dict[str, Any] | None = None) -> None:
        opts = opts or {}
        self.name: str | None = opts.get("name")
        self.robot: Robot | None = opts.get("robot")
        self.connection: Any = opts.get("connection")
        self.device: Any = opts.get("device")
        self.pin: Any = opts.get("pin")
        self.events: list[str] = list(opts.get("events", []))
        self.commands: dict[str, Any] = {}
        self.details: dict[str, Any] = {
            key: value for key, value in opts.items() if key not in _DRIVER_RESERVED
        }

    @abstractmethod
    def start(self) -> Any:
        """Bring the device up.  Raise to report failure."""

    @abstractmethod
    def halt(self) -> Any:
        """Stop the device."""

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "driver": type(self).__name__,
            "connection": getattr(self.connection, "name", None),
            "commands": list(self.commands),
            "events": list(self.events),
            "details": dict(self.details),
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"
