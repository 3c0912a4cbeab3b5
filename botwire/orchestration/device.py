"""Orchestration layer — Device factory.

Same resolution pattern as :mod:`botwire.orchestration.connection`, keyed on
the ``driver`` capability.  Before the plugin builds the driver, the factory
stores a :class:`DeviceSpec` under ``opts["device"]`` so the driver can reach
the wrapper describing it (its name, robot and connection).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from botwire.config import Settings, get_settings
from botwire.logging import get_logger
from botwire.orchestration.connection import check_contract, graft_stand_ins, resolve_plugin
from botwire.plugins.registry import CapabilityRegistry, get_registry

if TYPE_CHECKING:
    from botwire.orchestration.robot import Robot

log = get_logger(__name__)

REQUIRED_METHODS = ("start", "halt")


@dataclass
class DeviceSpec:
    """Back-reference handed to a driver while it is being built."""

    name: str | None
    robot: "Robot | None"
    connection: Any
    options: dict[str, Any] = field(default_factory=dict, repr=False)


def init_device(
    opts: dict[str, Any],
    registry: CapabilityRegistry | None = None,
    settings: Settings | None = None,
) -> Any:
    """Create the driver described by *opts* and return it.

    ``opts["connection"]`` must already be the connection instance, not its
    name; the Robot resolves names before calling this.
    """
    registry = registry or get_registry()
    settings = settings or get_settings()

    capability = opts.get("driver")
    module = resolve_plugin(registry, settings, "driver", capability, opts.get("module"))

    opts["device"] = DeviceSpec(
        name=opts.get("name"),
        robot=opts.get("robot"),
        connection=opts.get("connection"),
        options=opts,
    )

    driver = module.driver(opts)
    check_contract(driver, REQUIRED_METHODS, opts.get("module") or capability, "driver")

    if settings.test_mode_active:
        stub = registry.find_by_driver("test").driver(opts)
        graft_stand_ins(stub, driver)
        log.debug("device_stubbed", device=opts.get("name"), driver=capability)
        return stub

    return driver
