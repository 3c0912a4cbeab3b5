"""Small helpers shared by the registry and the orchestrator."""

from __future__ import annotations

import inspect
import random
import signal
from typing import Any, Awaitable, Callable, Iterable

from botwire.logging import get_logger

log = get_logger(__name__)


def random_name() -> str:
    """Return a generated robot name, e.g. ``"Robot 40218"``."""
    return f"Robot {random.randint(0, 99999)}"


def make_unique(name: str, existing: Iterable[str]) -> str:
    """Return *name*, or ``name-1``, ``name-2``… if it is already taken."""
    taken = set(existing)
    if name not in taken:
        return name
    i = 1
    while f"{name}-{i}" in taken:
        i += 1
    return f"{name}-{i}"


def request_interrupt() -> None:
    """Ask the process to shut down after an unrecoverable wiring error.

    Raises ``SIGINT`` in the current process, so whatever interrupt handling
    the host program installed (by default ``KeyboardInterrupt``) runs.
    """
    log.critical("interrupt_requested")
    signal.raise_signal(signal.SIGINT)


async def maybe_await(fn: Callable[..., Any], *args: Any) -> Any:
    """Call *fn* and await the result when it is awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        return await result
    return result


def is_awaitable(value: Any) -> bool:
    return inspect.isawaitable(value)


def public_callables(obj: Any) -> dict[str, Callable[..., Any]]:
    """Return the public callable members of *obj* (bound methods included)."""
    members: dict[str, Callable[..., Any]] = {}
    for name in dir(obj):
        if name.startswith("_"):
            continue
        try:
            value = getattr(obj, name)
        except AttributeError:
            continue
        if callable(value) and not inspect.isclass(value):
            members[name] = value
    return members


def stand_in(reference: Callable[..., Any]) -> Callable[..., Any] | Callable[..., Awaitable[bool]]:
    """Build a no-op replacement for *reference* that reports success."""
    if inspect.iscoroutinefunction(reference):

        async def _async_stand_in(*_args: Any, **_kwargs: Any) -> bool:
            return True

        return _async_stand_in

    def _stand_in(*_args: Any, **_kwargs: Any) -> bool:
        return True

    return _stand_in
