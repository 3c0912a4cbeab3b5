"""Orchestration layer — Robot lifecycle orchestrator.

A Robot owns a set of named connections (adaptor instances) and named
devices (driver instances), each device wired to one of the robot's
connections.  Lifecycle::

    Robot(...)        CONSTRUCTED → CONNECTIONS_INITIALIZED → DEVICES_INITIALIZED → IDLE
    await start()     IDLE → STARTING → RUNNING
    await halt()      RUNNING → HALTING → IDLE

Ordering guarantees:
  - every connection has connected before any device starts
  - the work routine runs only after every device has started
  - every device has halted before any connection disconnects

"In parallel" means all calls of a phase are issued together on the event
loop (``asyncio.gather``) and the phase ends when all of them have settled.
Startup failures never raise out of :meth:`Robot.start`; they are logged,
routed to the optional ``error`` handler and the ``"error"`` event, and
passed to the completion callback.

Example::

    async def work(robot):
        robot.led.toggle()

    robot = Robot(
        name="blinky",
        connections={"arduino": {"adaptor": "firmata", "port": "/dev/ttyACM0"}},
        devices={"led": {"driver": "led", "pin": 13}},
        work=work,
    )
    await robot.start()
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Callable, Coroutine

from botwire import utils
from botwire.config import Settings, get_settings
from botwire.events import EVENT_ERROR, EVENT_READY, EventEmitter, LocalEventEmitter
from botwire.exceptions import (
    InvalidCommandsError,
    MissingConnectionError,
    NoConnectionsError,
    StartupError,
)
from botwire.logging import bind_robot_context, get_logger, reset_robot_context
from botwire.orchestration.connection import init_connection
from botwire.orchestration.device import init_device
from botwire.orchestration.state import RobotState
from botwire.plugins.registry import CapabilityRegistry, get_registry

log = get_logger(__name__)

Callback = Callable[..., Any]

# Options the constructor consumes itself; everything else is passed through.
_KNOWN_OPTIONS = (
    "connection",
    "connections",
    "device",
    "devices",
    "work",
    "play",
    "commands",
    "events",
    "error",
)


def _no_work(robot: "Robot") -> None:
    log.debug("no_work_yet", robot=robot.name)


class Robot:
    """A named set of connections and devices plus the work to run on them.

    Args:
        name:       Robot name; a random ``"Robot <n>"`` name when omitted.
        registry:   Capability registry to resolve plugins with
                    (default: the process-wide registry).
        settings:   Settings to read modes from (default: the process-wide settings).
        emitter:    Observer channel for ``"ready"`` / ``"error"``
                    (default: a fresh :class:`LocalEventEmitter`).
        connections: ``{name: spec}`` mapping (a list of specs, or a single
                    ``connection`` spec, is accepted but deprecated).
        devices:    ``{name: spec}`` mapping (same legacy forms as connections).
        work:       Callable invoked with the robot once everything started
                    (``play`` is an alias).  Coroutines are scheduled as a task.
        commands:   Mapping of command name to callable, or a zero-argument
                    callable returning one.  When omitted, every callable
                    passthrough option becomes a command.
        events:     Names of the events this robot emits (reported by :meth:`to_json`).
        error:      Callable invoked with the :class:`StartupError` when start fails.
        **opts:     Any other option is set as an attribute on the robot.

    Raises:
        NoConnectionsError:     devices were given but no connections.
        MissingConnectionError: a device names a connection the robot does not have.
        InvalidCommandsError:   ``commands`` is neither a mapping nor returns one.
        ModuleNotFoundError:    no plugin provides a requested capability.
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        registry: CapabilityRegistry | None = None,
        settings: Settings | None = None,
        emitter: EventEmitter | None = None,
        **opts: Any,
    ) -> None:
        self._registry = registry or get_registry()
        self._settings = settings or get_settings()
        self._emitter = emitter or LocalEventEmitter()
        self._exposed: set[str] = set()
        self._work_task: asyncio.Task[Any] | None = None
        self._start_task: asyncio.Task[Any] | None = None

        self.state = RobotState.CONSTRUCTED
        self.name: str = name or utils.random_name()
        self.connections: dict[str, Any] = {}
        self.devices: dict[str, Any] = {}
        self.commands: dict[str, Callable[..., Any]] = {}
        self.running = False
        self.work: Callable[["Robot"], Any] = opts.get("work") or opts.get("play") or _no_work
        self.error: Callable[..., Any] | None = opts.get("error")
        events = opts.get("events")
        self.events: list[str] = list(events) if isinstance(events, (list, tuple)) else []

        token = bind_robot_context(self.name)
        try:
            self.init_connections(opts)
            self.state = RobotState.CONNECTIONS_INITIALIZED
            self.init_devices(opts)
            self.state = RobotState.DEVICES_INITIALIZED
            self._apply_passthrough(opts)
            self._apply_commands(opts.get("commands"))
        finally:
            reset_robot_context(token)

        self.state = RobotState.IDLE

        if self._settings.mode == "auto":
            self._schedule_auto_start()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _apply_passthrough(self, opts: dict[str, Any]) -> None:
        commands_given = opts.get("commands") is not None
        for key, value in opts.items():
            if key in _KNOWN_OPTIONS:
                continue
            if hasattr(self, key):
                log.debug("option_not_applied", option=key, reason="attribute exists")
                continue
            setattr(self, key, value)
            if not commands_given and callable(value):
                self.commands[key] = value

    def _apply_commands(self, commands: Any) -> None:
        if commands is None:
            return
        if callable(commands):
            try:
                cmds = commands()
            except TypeError as exc:
                raise InvalidCommandsError(commands) from exc
        else:
            cmds = commands
        if not isinstance(cmds, Mapping):
            raise InvalidCommandsError(cmds)
        self.commands = dict(cmds)

    def _schedule_auto_start(self) -> None:
        # Deferred by one loop iteration so observers attached right after
        # construction see "ready".
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.warning("auto_start_skipped", robot=self.name, reason="no running event loop")
            return
        loop.call_soon(self._auto_start)

    def _auto_start(self) -> None:
        self._start_task = asyncio.ensure_future(self.start())

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def connection(self, name: str | None, spec: Mapping[str, Any]) -> "Robot":
        """Build and register one connection; returns the robot for chaining."""
        spec = dict(spec)
        name = name or spec.get("name") or spec.get("adaptor") or spec.get("module")
        spec["robot"] = self
        spec["name"] = name

        if name in self.connections:
            spec["name"] = utils.make_unique(name, self.connections)
            log.warning(
                "connection_renamed",
                original=name,
                renamed=spec["name"],
                reason="Connection names must be unique.",
            )

        self.connections[spec["name"]] = init_connection(spec, self._registry, self._settings)
        return self

    def init_connections(self, opts: dict[str, Any]) -> dict[str, Any]:
        """Build every connection listed in *opts*."""
        log.info("initializing_connections", robot=self.name)

        single = opts.get("connection")
        many = opts.get("connections")
        if single is None and many is None:
            return self.connections

        if single:
            log.warning(
                "deprecated_option",
                option="connection",
                hint="Specifying a single connection with the 'connection' key is deprecated.",
            )
            self.connection(single.get("name"), single)
            return self.connections

        if isinstance(many, (list, tuple)):
            log.warning(
                "deprecated_option",
                option="connections",
                hint="Specifying connections as a list is deprecated.",
            )
            for spec in many:
                self.connection(spec.get("name"), spec)
            return self.connections

        if isinstance(many, Mapping):
            for key, spec in many.items():
                conn_name = key if isinstance(key, str) else spec.get("name")
                spec = dict(spec)
                nested = spec.pop("devices", None)
                if nested:
                    self._hoist_devices(opts, conn_name, nested)
                self.connection(conn_name, spec)

        return self.connections

    @staticmethod
    def _hoist_devices(opts: dict[str, Any], conn_name: str, nested: Mapping[str, Any]) -> None:
        """Move devices declared inside a connection spec up to the robot's devices."""
        existing = opts.get("devices")
        if isinstance(existing, (list, tuple)):
            hoisted: Any = list(existing)
            for dev_name, dev in nested.items():
                hoisted.append({**dev, "name": dev_name, "connection": conn_name})
        else:
            hoisted = dict(existing or {})
            for dev_name, dev in nested.items():
                hoisted[dev_name] = {**dev, "connection": conn_name}
        opts["devices"] = hoisted

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def device(self, name: str | None, spec: Mapping[str, Any]) -> "Robot":
        """Build and register one device; returns the robot for chaining."""
        spec = dict(spec)
        name = name or spec.get("name") or spec.get("driver") or spec.get("module")
        spec["robot"] = self
        spec["name"] = name

        if name in self.devices:
            spec["name"] = utils.make_unique(name, self.devices)
            log.warning(
                "device_renamed",
                original=name,
                renamed=spec["name"],
                reason="Device names must be unique.",
            )

        spec["connection"] = self._resolve_connection(spec["name"], spec.get("connection"))
        self.devices[spec["name"]] = init_device(spec, self._registry, self._settings)
        return self

    def _resolve_connection(self, device_name: str, ref: Any) -> Any:
        if ref is None:
            if not self.connections:
                raise NoConnectionsError(self.name)
            return next(iter(self.connections.values()))

        if isinstance(ref, str):
            if ref in self.connections:
                return self.connections[ref]
            missing = ref
        elif any(ref is conn for conn in self.connections.values()):
            return ref
        else:
            missing = getattr(ref, "name", None) or repr(ref)

        error = MissingConnectionError(robot=self.name, device=device_name, connection=missing)
        log.critical("connection_not_found", device=device_name, connection=missing)
        utils.request_interrupt()
        raise error

    def init_devices(self, opts: dict[str, Any]) -> dict[str, Any]:
        """Build every device listed in *opts*.  Requires at least one connection."""
        log.info("initializing_devices", robot=self.name)

        single = opts.get("device")
        many = opts.get("devices")
        if single is None and many is None:
            return self.devices

        if not self.connections:
            raise NoConnectionsError(self.name)

        if single:
            log.warning(
                "deprecated_option",
                option="device",
                hint="Specifying a single device with the 'device' key is deprecated.",
            )
            self.device(single.get("name"), single)
            return self.devices

        if isinstance(many, (list, tuple)):
            log.warning(
                "deprecated_option",
                option="devices",
                hint="Specifying devices as a list is deprecated.",
            )
            for spec in many:
                self.device(spec.get("name"), spec)
            return self.devices

        if isinstance(many, Mapping):
            for key, spec in many.items():
                self.device(key, spec)

        return self.devices

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, callback: Callback | None = None) -> "Robot":
        """Connect, start devices, then run the work routine.

        A no-op while the robot is running or already starting.  *callback*,
        when given, is called as ``callback(error, results)`` once the
        sequence finished or failed; ``error`` is a :class:`StartupError` or
        ``None``.
        """
        if self.running or self.state is RobotState.STARTING:
            return self

        token = bind_robot_context(self.name)
        self.state = RobotState.STARTING
        results: list[Any] = []
        error: StartupError | None = None
        phase = "connections"
        try:
            results.append(await self.start_connections())
            phase = "devices"
            results.append(await self.start_devices())
            if self._settings.work_mode == "async":
                phase = "work"
                await self.start_work()
            else:
                self.state = RobotState.IDLE
        except Exception as exc:
            error = StartupError(robot=self.name, phase=phase, cause=exc)
            self.state = RobotState.IDLE
            log.critical("robot_start_failed", phase=phase, error=str(exc))
            await self._report_error(error)
        finally:
            reset_robot_context(token)

        if callback is not None:
            callback(error, results)
        return self

    async def _report_error(self, error: StartupError) -> None:
        if callable(self.error):
            try:
                await utils.maybe_await(self.error, error)
            except Exception as exc:
                log.error("error_handler_failed", error=str(exc))
        await self._emitter.emit(EVENT_ERROR, error)

    async def start_connections(self) -> list[Any]:
        """Connect every connection concurrently; raise the first failure once all settled."""
        log.info("starting_connections")
        starters = []
        for name, conn in self.connections.items():
            self._expose(name, conn)
            starters.append(self._start_connection(name, conn))
        return await _settle(starters)

    async def _start_connection(self, name: str, conn: Any) -> Any:
        where = {}
        if getattr(conn, "host", None):
            where["host"] = conn.host
        elif getattr(conn, "port", None):
            where["port"] = conn.port
        log.debug("connection_starting", connection=name, **where)
        return await utils.maybe_await(conn.connect)

    async def start_devices(self) -> list[Any]:
        """Start every device concurrently; raise the first failure once all settled."""
        log.info("starting_devices")
        starters = []
        for name, device in self.devices.items():
            self._expose(name, device)
            starters.append(self._start_device(name, device))
        return await _settle(starters)

    async def _start_device(self, name: str, device: Any) -> Any:
        where = {}
        if getattr(device, "pin", None) is not None:
            where["pin"] = device.pin
        log.debug("device_starting", device=name, **where)
        return await utils.maybe_await(device.start)

    async def start_work(self) -> None:
        """Announce ``"ready"``, invoke the work routine and mark the robot running."""
        log.info("working")
        await self._emitter.emit(EVENT_READY, self)
        result = self.work(self)
        if utils.is_awaitable(result):
            self._work_task = asyncio.ensure_future(result)
            self._work_task.add_done_callback(self._on_work_done)
        self.running = True
        self.state = RobotState.RUNNING

    def _on_work_done(self, task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("work_failed", robot=self.name, error=str(exc))

    async def halt(self, callback: Callback | None = None) -> BaseException | None:
        """Halt every device, then disconnect every connection.

        ``running`` drops to False immediately.  Device failures are logged;
        the first disconnect failure (or ``None``) is returned and passed to
        *callback*.
        """
        self.running = False
        self.state = RobotState.HALTING
        token = bind_robot_context(self.name)
        try:
            if self._work_task is not None and not self._work_task.done():
                self._work_task.cancel()

            log.info("halting_devices")
            outcomes = await asyncio.gather(
                *(utils.maybe_await(d.halt) for d in self.devices.values()),
                return_exceptions=True,
            )
            for name, outcome in zip(self.devices, outcomes):
                if isinstance(outcome, BaseException):
                    log.warning("device_halt_failed", device=name, error=str(outcome))

            log.info("disconnecting_connections")
            outcomes = await asyncio.gather(
                *(utils.maybe_await(c.disconnect) for c in self.connections.values()),
                return_exceptions=True,
            )
            error: BaseException | None = None
            for name, outcome in zip(self.connections, outcomes):
                if isinstance(outcome, BaseException):
                    log.warning("connection_disconnect_failed", connection=name, error=str(outcome))
                    error = error or outcome
        finally:
            reset_robot_context(token)

        self.state = RobotState.IDLE
        if callback is not None:
            callback(error)
        return error

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def on(self, event: str, handler: Callback | None = None) -> Any:
        """Attach an observer; without *handler*, returns a decorator."""
        return self._emitter.on(event, handler)

    def once(self, event: str, handler: Callback | None = None) -> Any:
        return self._emitter.once(event, handler)

    def off(self, event: str, handler: Callback) -> None:
        self._emitter.off(event, handler)

    async def emit(self, event: str, *args: Any) -> int:
        return await self._emitter.emit(event, *args)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def _expose(self, name: str, component: Any) -> None:
        """Make *component* reachable as ``robot.<name>`` unless that would shadow something."""
        if name not in self._exposed and (hasattr(type(self), name) or name in vars(self)):
            log.warning("component_not_exposed", component=name, reason="attribute exists")
            return
        setattr(self, name, component)
        self._exposed.add(name)

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "connections": [conn.to_json() for conn in self.connections.values()],
            "devices": [device.to_json() for device in self.devices.values()],
            "commands": list(self.commands),
            "events": list(self.events),
        }

    def __str__(self) -> str:
        return f"[Robot name='{self.name}']"

    def __repr__(self) -> str:
        return f"<Robot name={self.name!r} state={self.state.value}>"


async def _settle(calls: list[Coroutine[Any, Any, Any]]) -> list[Any]:
    outcomes = await asyncio.gather(*calls, return_exceptions=True)
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    return list(outcomes)
