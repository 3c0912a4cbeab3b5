"""botwire — Exception hierarchy.

All exceptions raised by the framework inherit from BotwireError so that
callers can catch the full family with a single except clause when needed.

Hierarchy:
    BotwireError
    ├── RegistryError
    │   ├── ModuleNotFoundError
    │   ├── ModuleLoadError
    │   └── PluginContractError
    ├── WiringError
    │   ├── NoConnectionsError
    │   ├── MissingConnectionError
    │   └── InvalidCommandsError
    └── StartupError
"""

from __future__ import annotations

from typing import Any


class BotwireError(Exception):
    """Base exception for all botwire errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Registry layer
# ---------------------------------------------------------------------------


class RegistryError(BotwireError):
    """Base for plugin resolution errors."""


class ModuleNotFoundError(RegistryError):  # noqa: A001 — shadows builtin intentionally
    """No plugin module with this name could be located."""

    def __init__(self, module_name: str, capability: str | None = None) -> None:
        message = f"Cannot find the '{module_name}' module."
        if capability:
            message += f" No plugin provides the '{capability}' capability."
        message += (
            f" This might be fixed by installing it with "
            f"'pip install {module_name.replace('_', '-')}' and trying again."
        )
        super().__init__(
            message,
            context={"module_name": module_name, "capability": capability},
        )
        self.module_name = module_name
        self.capability = capability


class ModuleLoadError(RegistryError):
    """The plugin module was found but raised while being imported."""

    def __init__(self, module_name: str, reason: str) -> None:
        super().__init__(
            f"Module '{module_name}' failed to load: {reason}",
            context={"module_name": module_name, "reason": reason},
        )
        self.module_name = module_name
        self.reason = reason


class PluginContractError(RegistryError):
    """A plugin returned an object lacking a required method."""

    def __init__(self, module_name: str, kind: str, missing: list[str]) -> None:
        super().__init__(
            f"{kind.capitalize()} from '{module_name}' is missing required "
            f"method(s): {', '.join(missing)}",
            context={"module_name": module_name, "kind": kind, "missing": missing},
        )
        self.module_name = module_name
        self.kind = kind
        self.missing = missing


# ---------------------------------------------------------------------------
# Wiring layer
# ---------------------------------------------------------------------------


class WiringError(BotwireError):
    """Base for robot configuration errors detected at construction time."""


class NoConnectionsError(WiringError):
    """Devices were requested but no connection has been configured."""

    def __init__(self, robot: str) -> None:
        super().__init__(
            "No connections specified",
            context={"robot": robot},
        )
        self.robot = robot


class MissingConnectionError(WiringError):
    """A device references a connection name the robot does not own."""

    def __init__(self, robot: str, device: str, connection: str) -> None:
        super().__init__(
            f"No connection found with the name {connection}.",
            context={"robot": robot, "device": device, "connection": connection},
        )
        self.robot = robot
        self.device = device
        self.connection = connection


class InvalidCommandsError(WiringError):
    """``commands`` was neither a mapping nor a callable returning one."""

    def __init__(self, got: Any) -> None:
        super().__init__(
            "#commands must be an object or a function that returns an object",
            context={"type": type(got).__name__},
        )
        self.got = got


# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------


class StartupError(BotwireError):
    """A connection or device failed while the robot was starting."""

    def __init__(self, robot: str, phase: str, cause: Exception) -> None:
        super().__init__(
            f"Robot '{robot}' failed during {phase}: {cause}",
            context={
                "robot": robot,
                "phase": phase,
                "cause_type": type(cause).__name__,
            },
        )
        self.robot = robot
        self.phase = phase
        self.cause = cause
