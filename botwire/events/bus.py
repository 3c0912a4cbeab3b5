"""Event notification infrastructure — EventEmitter interface and implementations.

Robots announce lifecycle transitions as named events so that supervising
code can observe them without the orchestrator knowing who is listening:

                                     ┌──────────────────────┐
  Robot.start_work ──emit("ready")──►│                      │◄── user work hooks
  Robot.start      ──emit("error")──►│  EventEmitter impl   │◄── supervisors / retry loops
  plugins          ──emit(...)─────► │                      │◄── dashboards, tests
                                     └──────────────────────┘

Implementations:
  - NullEventEmitter  → discards everything (zero overhead)
  - LocalEventEmitter → in-process handler lists (default for every Robot)

Handlers may be plain callables or coroutine functions.  ``emit`` awaits
coroutine handlers in registration order.

Standard event names:
  EVENT_READY = "ready"  — all devices started, work about to run
  EVENT_ERROR = "error"  — startup failed
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable

from botwire.logging import get_logger

log = get_logger(__name__)

# ---------------------------------------------------------------------------
# Standard event constants
# ---------------------------------------------------------------------------

EVENT_READY = "ready"
EVENT_ERROR = "error"

Handler = Callable[..., Any]


# ---------------------------------------------------------------------------
# Abstract interface
# ---------------------------------------------------------------------------


class EventEmitter(ABC):
    """Abstract observer channel.

    Subscribers attach with :meth:`on` (or :meth:`once`) and are invoked with
    the positional arguments passed to :meth:`emit`.
    """

    def on(self, event: str, handler: Handler | None = None) -> Any:
        """Attach *handler* to *event* and return it.

        Called without *handler*, returns a decorator that attaches the
        decorated function::

            @emitter.on("ready")
            def announce(robot): ...
        """
        if handler is None:
            return lambda fn: self.on(event, fn)
        self._subscribe(event, handler)
        return handler

    @abstractmethod
    def _subscribe(self, event: str, handler: Handler) -> None:
        """Store *handler* so that :meth:`emit` reaches it."""

    @abstractmethod
    def off(self, event: str, handler: Handler) -> None:
        """Detach *handler* from *event*.  Unknown handlers are ignored."""

    @abstractmethod
    def listeners(self, event: str) -> list[Handler]:
        """Return the handlers currently attached to *event*."""

    @abstractmethod
    async def emit(self, event: str, *args: Any) -> int:
        """Invoke every handler attached to *event*; return how many ran.

        This method must not raise — handler failures are logged and
        swallowed so that one faulty observer never aborts a robot lifecycle
        transition.
        """

    def once(self, event: str, handler: Handler | None = None) -> Any:
        """Attach *handler* so that it runs on the next *event* only.

        Like :meth:`on`, works as a decorator when *handler* is omitted.
        """
        if handler is None:
            return lambda fn: self.once(event, fn)

        async def _once(*args: Any) -> None:
            self.off(event, _once)
            result = handler(*args)
            if inspect.isawaitable(result):
                await result

        self._subscribe(event, _once)
        return handler


# ---------------------------------------------------------------------------
# NullEventEmitter
# ---------------------------------------------------------------------------


class NullEventEmitter(EventEmitter):
    """Discards all subscriptions and events."""

    def _subscribe(self, event: str, handler: Handler) -> None:
        pass

    def off(self, event: str, handler: Handler) -> None:
        pass

    def listeners(self, event: str) -> list[Handler]:
        return []

    async def emit(self, event: str, *args: Any) -> int:
        return 0


# ---------------------------------------------------------------------------
# LocalEventEmitter
# ---------------------------------------------------------------------------


class LocalEventEmitter(EventEmitter):
    """In-process emitter backed by per-event handler lists.

    Usage::

        emitter = LocalEventEmitter()

        @emitter.on("ready")
        def announce(robot):
            print(f"{robot.name} is ready")

        await emitter.emit("ready", robot)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def _subscribe(self, event: str, handler: Handler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event]

    def listeners(self, event: str) -> list[Handler]:
        return list(self._handlers.get(event, []))

    async def emit(self, event: str, *args: Any) -> int:
        handlers = self.listeners(event)
        if not handlers:
            log.debug("event_without_listeners", event_name=event)
            return 0
        for handler in handlers:
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                log.error(
                    "event_handler_failed",
                    event_name=event,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(exc),
                )
        return len(handlers)
