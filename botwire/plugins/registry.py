"""Plugin layer — Capability registry.

The registry is the single point of truth for which plugin module provides
which capability.  It handles:
  - Loading plugin modules once, by name, through an injectable loader
  - Recording the adaptor / driver capabilities each module advertises
  - Recursively registering the modules a plugin declares as dependencies
  - Capability lookup in registration order

Lookup normalisation:
  ``find_by_adaptor("firmata")`` searches the ``adaptors`` list of every
  record.  The key is pluralised only when the requested name does not
  already end in ``"s"``, so a request such as ``find_by_adaptor("sensors")``
  searches the singular key, which no record carries, and finds nothing.
  Existing robot definitions depend on this rule; keep it as is.

The registry performs no locking.  Register modules from the thread that
runs the event loop; registration is idempotent per module name.
"""

from __future__ import annotations

import builtins
import importlib
import importlib.metadata
from dataclasses import dataclass, field
from typing import Any, Callable

from botwire import utils
from botwire.config import get_settings
from botwire.exceptions import ModuleLoadError, ModuleNotFoundError
from botwire.logging import get_logger

log = get_logger(__name__)

Loader = Callable[[str], Any]

BUILTIN_PLUGINS = (
    "botwire.plugins.loopback",
    "botwire.plugins.ping",
    "botwire.plugins.stub",
)


@dataclass
class ModuleRecord:
    """Bookkeeping entry for a registered plugin module."""

    name: str
    module: Any
    adaptors: list[str] = field(default_factory=list)
    drivers: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)

    @classmethod
    def from_module(cls, name: str, module: Any) -> "ModuleRecord":
        return cls(
            name=name,
            module=module,
            adaptors=list(getattr(module, "adaptors", None) or []),
            drivers=list(getattr(module, "drivers", None) or []),
            dependencies=list(getattr(module, "dependencies", None) or []),
        )


class CapabilityRegistry:
    """Runtime registry mapping plugin modules to the capabilities they provide.

    Usage::

        registry = CapabilityRegistry()
        registry.register("botwire_firmata")

        module = registry.find_by_adaptor("firmata")
        conn = module.adaptor({"name": "arduino", "port": "/dev/ttyACM0"})
    """

    def __init__(self, loader: Loader | None = None, load_builtins: bool = True) -> None:
        self._records: dict[str, ModuleRecord] = {}
        self._loader: Loader = loader or importlib.import_module
        if load_builtins:
            for name in BUILTIN_PLUGINS:
                self.register_module(name, importlib.import_module(name))

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, module_name: str) -> Any:
        """Load *module_name* through the loader and record its capabilities.

        Returns the cached module when *module_name* is already registered.

        Raises:
            ModuleNotFoundError: The loader cannot locate the module.  A
                process interrupt is requested before raising, since a robot
                cannot run without its plugins.
            ModuleLoadError: The module was found but failed while loading.
        """
        if module_name in self._records:
            return self._records[module_name].module

        try:
            module = self._loader(module_name)
        except builtins.ModuleNotFoundError as exc:
            if not _is_missing(module_name, exc):
                raise ModuleLoadError(module_name=module_name, reason=str(exc)) from exc
            error = ModuleNotFoundError(module_name=module_name)
            log.critical("module_not_found", module_name=module_name, hint=error.message)
            utils.request_interrupt()
            raise error from exc
        except ImportError as exc:
            raise ModuleLoadError(module_name=module_name, reason=str(exc)) from exc

        return self.register_module(module_name, module)

    def register_module(self, module_name: str, module: Any) -> Any:
        """Record an already-loaded provider under *module_name*.

        Dependencies the provider declares are loaded through :meth:`register`.
        """
        if module_name in self._records:
            return self._records[module_name].module

        record = ModuleRecord.from_module(module_name, module)
        self._records[module_name] = record
        self._log_registration(record)

        for dependency in record.dependencies:
            self.register(dependency)

        return record.module

    def discover_plugins(self, group: str | None = None) -> list[str]:
        """Register every plugin published under the entry point *group*.

        Example ``pyproject.toml`` for a plugin package::

            [project.entry-points."botwire.plugins"]
            botwire_firmata = "botwire_firmata"

        Returns the names of the entry points that registered successfully.
        """
        group = group or get_settings().plugins.entry_point_group
        loaded: list[str] = []
        for ep in importlib.metadata.entry_points(group=group):
            try:
                self.register_module(ep.name, ep.load())
            except Exception as exc:
                log.warning("plugin_discovery_failed", entry_point=ep.name, error=str(exc))
                continue
            loaded.append(ep.name)
        log.info("plugins_discovered", group=group, count=len(loaded))
        return loaded

    def unregister(self, module_name: str) -> None:
        """Remove a module from the registry (used in tests)."""
        self._records.pop(module_name, None)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_by_adaptor(self, name: str) -> Any | None:
        return self._find_by("adaptor", name)

    def find_by_driver(self, name: str) -> Any | None:
        return self._find_by("driver", name)

    def find_by_module(self, module_name: str) -> Any | None:
        record = self._records.get(module_name)
        return record.module if record is not None else None

    def _find_by(self, kind: str, name: str) -> Any | None:
        key = kind if name.endswith("s") else kind + "s"
        return self._search(key, name)

    def _search(self, key: str, value: str) -> Any | None:
        for record in self._records.values():
            if value in (getattr(record, key, None) or ()):
                return record.module
        return None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list_modules(self) -> list[str]:
        """Return registered module names in registration order."""
        return list(self._records)

    def get_record(self, module_name: str) -> ModuleRecord | None:
        return self._records.get(module_name)

    def status_report(self) -> dict[str, dict[str, list[str]]]:
        """Return ``{module: {"adaptors": [...], "drivers": [...], "dependencies": [...]}}``."""
        return {
            name: {
                "adaptors": list(record.adaptors),
                "drivers": list(record.drivers),
                "dependencies": list(record.dependencies),
            }
            for name, record in self._records.items()
        }

    def __contains__(self, module_name: object) -> bool:
        return module_name in self._records

    def _log_registration(self, record: ModuleRecord) -> None:
        log.debug(
            "module_registered",
            module_name=record.name,
            adaptors=record.adaptors or None,
            drivers=record.drivers or None,
            dependencies=record.dependencies or None,
        )


def _is_missing(module_name: str, exc: builtins.ModuleNotFoundError) -> bool:
    """True when *exc* reports *module_name* itself (or a parent package) as missing."""
    missing = exc.name or ""
    return module_name == missing or module_name.startswith(missing + ".")


# Module-level default — created lazily, replaceable in tests.
_registry: CapabilityRegistry | None = None


def get_registry() -> CapabilityRegistry:
    global _registry
    if _registry is None:
        _registry = CapabilityRegistry()
        if get_settings().plugins.discover_on_startup:
            _registry.discover_plugins()
    return _registry


def override_registry(registry: CapabilityRegistry | None) -> None:
    """Replace the module-level default registry. Used in tests."""
    global _registry
    _registry = registry
