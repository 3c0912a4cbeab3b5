"""Orchestration layer — Connection factory.

Turns a connection spec into a live adaptor instance:

  1. ``module`` given     → register that module directly
     otherwise            → look the ``adaptor`` capability up in the registry
  2. nothing found        → register ``<plugin prefix><adaptor>`` and look again
  3. still nothing        → critical log, interrupt request, ModuleNotFoundError
  4. ``module.adaptor(opts)`` builds the instance
  5. in test mode the ``test`` adaptor is returned instead, with success
     stand-ins for every public method it lacks
"""

from __future__ import annotations

from typing import Any

from botwire import utils
from botwire.config import Settings, get_settings
from botwire.exceptions import ModuleNotFoundError, PluginContractError
from botwire.logging import get_logger
from botwire.plugins.registry import CapabilityRegistry, get_registry
from botwire.utils import public_callables, stand_in

log = get_logger(__name__)

REQUIRED_METHODS = ("connect", "disconnect")


def init_connection(
    opts: dict[str, Any],
    registry: CapabilityRegistry | None = None,
    settings: Settings | None = None,
) -> Any:
    """Create the adaptor described by *opts* and return it.

    *opts* keys understood here: ``adaptor`` (capability name), ``module``
    (explicit plugin module name).  Every key, including ``name`` and
    ``robot``, is forwarded to the plugin's ``adaptor()`` factory.
    """
    registry = registry or get_registry()
    settings = settings or get_settings()

    capability = opts.get("adaptor")
    module = resolve_plugin(registry, settings, "adaptor", capability, opts.get("module"))

    adaptor = module.adaptor(opts)
    source = opts.get("module") or capability
    check_contract(adaptor, REQUIRED_METHODS, source, "adaptor")

    if settings.test_mode_active:
        stub = registry.find_by_adaptor("test").adaptor(opts)
        graft_stand_ins(stub, adaptor)
        log.debug("connection_stubbed", connection=opts.get("name"), adaptor=capability)
        return stub

    return adaptor


def resolve_plugin(
    registry: CapabilityRegistry,
    settings: Settings,
    kind: str,
    capability: str | None,
    module_name: str | None,
) -> Any:
    """Return the plugin module providing *capability* for *kind* (adaptor/driver)."""
    finder = registry.find_by_adaptor if kind == "adaptor" else registry.find_by_driver

    module = None
    if module_name:
        module = registry.register(module_name)
    elif capability:
        module = finder(capability)

    if module is None:
        if not capability:
            raise ValueError(f"A {kind} spec needs either an '{kind}' or a 'module' key.")
        conventional = settings.plugin_prefix + capability
        log.debug("plugin_on_demand", kind=kind, capability=capability, module_name=conventional)
        registry.register(conventional)
        module = finder(capability)
        if module is None:
            error = ModuleNotFoundError(module_name=conventional, capability=capability)
            log.critical("module_not_found", module_name=conventional, hint=error.message)
            utils.request_interrupt()
            raise error

    return module


def check_contract(instance: Any, required: tuple[str, ...], source: Any, kind: str) -> None:
    missing = [name for name in required if not callable(getattr(instance, name, None))]
    if missing:
        raise PluginContractError(module_name=str(source), kind=kind, missing=missing)


def graft_stand_ins(stub: Any, real: Any) -> list[str]:
    """Give *stub* a success-returning stand-in for each public method of *real* it lacks."""
    grafted = []
    stub_members = public_callables(stub)
    for name, member in public_callables(real).items():
        if name in stub_members:
            continue
        setattr(stub, name, stand_in(member))
        grafted.append(name)
    return grafted
