"""Event layer — observer channel for robot lifecycle notifications.

Quick start::

    from botwire.events import EVENT_READY, LocalEventEmitter

    emitter = LocalEventEmitter()
    emitter.on(EVENT_READY, lambda robot: print(robot.name, "ready"))
"""

from botwire.events.bus import (
    EVENT_ERROR,
    EVENT_READY,
    EventEmitter,
    LocalEventEmitter,
    NullEventEmitter,
)

__all__ = [
    # Interface
    "EventEmitter",
    # Implementations
    "NullEventEmitter",
    "LocalEventEmitter",
    # Event names
    "EVENT_READY",
    "EVENT_ERROR",
]
