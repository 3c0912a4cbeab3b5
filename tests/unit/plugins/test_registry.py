"""Unit tests — CapabilityRegistry."""

from __future__ import annotations

import builtins
import types
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from botwire.exceptions import ModuleLoadError, ModuleNotFoundError
from botwire.plugins import loopback, ping, stub
from botwire.plugins.registry import (
    BUILTIN_PLUGINS,
    CapabilityRegistry,
    ModuleRecord,
    get_registry,
    override_registry,
)


def plugin(name: str, **attrs: Any) -> types.ModuleType:
    module = types.ModuleType(name)
    for key, value in attrs.items():
        setattr(module, key, value)
    return module


class DictLoader:
    """Loader backed by a dict; counts how often each name is loaded."""

    def __init__(self, modules: dict[str, Any]) -> None:
        self.modules = modules
        self.calls: list[str] = []

    def __call__(self, name: str) -> Any:
        self.calls.append(name)
        if name not in self.modules:
            raise builtins_module_not_found(name)
        return self.modules[name]


def builtins_module_not_found(name: str) -> Exception:
    return builtins.ModuleNotFoundError(f"No module named {name!r}", name=name)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestRegister:
    def test_builtins_registered_on_construction(self) -> None:
        registry = CapabilityRegistry()
        assert registry.list_modules() == list(BUILTIN_PLUGINS)
        assert registry.find_by_module("botwire.plugins.loopback") is loopback

    def test_builtins_can_be_skipped(self) -> None:
        registry = CapabilityRegistry(load_builtins=False)
        assert registry.list_modules() == []

    def test_register_returns_module(self) -> None:
        firmata = plugin("botwire_firmata", adaptors=["firmata"])
        registry = CapabilityRegistry(loader=DictLoader({"botwire_firmata": firmata}))
        assert registry.register("botwire_firmata") is firmata

    def test_register_is_idempotent(self) -> None:
        firmata = plugin("botwire_firmata", adaptors=["firmata"])
        loader = DictLoader({"botwire_firmata": firmata})
        registry = CapabilityRegistry(loader=loader, load_builtins=False)

        first = registry.register("botwire_firmata")
        second = registry.register("botwire_firmata")

        assert first is second
        assert loader.calls == ["botwire_firmata"]

    def test_dependencies_registered_once(self) -> None:
        gpio = plugin("botwire_gpio", drivers=["led"])
        firmata = plugin("botwire_firmata", adaptors=["firmata"], dependencies=["botwire_gpio"])
        i2c = plugin("botwire_i2c", drivers=["lcd"], dependencies=["botwire_gpio"])
        loader = DictLoader(
            {"botwire_gpio": gpio, "botwire_firmata": firmata, "botwire_i2c": i2c}
        )
        registry = CapabilityRegistry(loader=loader, load_builtins=False)

        registry.register("botwire_firmata")
        registry.register("botwire_i2c")
        registry.register("botwire_firmata")

        assert loader.calls.count("botwire_gpio") == 1
        assert registry.list_modules() == ["botwire_firmata", "botwire_gpio", "botwire_i2c"]

    def test_record_captures_advertised_lists(self) -> None:
        firmata = plugin(
            "botwire_firmata",
            adaptors=["firmata"],
            drivers=["led", "button"],
        )
        registry = CapabilityRegistry(loader=DictLoader({"botwire_firmata": firmata}))
        registry.register("botwire_firmata")

        record = registry.get_record("botwire_firmata")
        assert isinstance(record, ModuleRecord)
        assert record.adaptors == ["firmata"]
        assert record.drivers == ["led", "button"]
        assert record.dependencies == []

    def test_missing_module_raises_and_requests_interrupt(self, interrupts: list[str]) -> None:
        registry = CapabilityRegistry(loader=DictLoader({}), load_builtins=False)
        with pytest.raises(ModuleNotFoundError) as exc_info:
            registry.register("botwire_sphero")
        assert exc_info.value.module_name == "botwire_sphero"
        assert "pip install botwire-sphero" in exc_info.value.message
        assert interrupts == ["SIGINT"]
        assert "botwire_sphero" not in registry

    def test_missing_transitive_import_is_load_error(self, interrupts: list[str]) -> None:
        def loader(name: str) -> Any:
            raise builtins_module_not_found("serial")

        registry = CapabilityRegistry(loader=loader, load_builtins=False)
        with pytest.raises(ModuleLoadError, match="serial"):
            registry.register("botwire_firmata")
        assert interrupts == []

    def test_import_error_is_load_error(self) -> None:
        def loader(name: str) -> Any:
            raise ImportError("cannot import name 'Board'")

        registry = CapabilityRegistry(loader=loader, load_builtins=False)
        with pytest.raises(ModuleLoadError):
            registry.register("botwire_firmata")

    def test_register_module_skips_loader(self) -> None:
        loader = MagicMock()
        registry = CapabilityRegistry(loader=loader, load_builtins=False)
        custom = plugin("custom", drivers=["servo"])

        assert registry.register_module("custom", custom) is custom
        loader.assert_not_called()
        assert registry.find_by_driver("servo") is custom

    def test_register_module_loads_declared_dependencies(self) -> None:
        gpio = plugin("botwire_gpio", drivers=["led"])
        loader = DictLoader({"botwire_gpio": gpio})
        registry = CapabilityRegistry(loader=loader, load_builtins=False)

        registry.register_module("custom", plugin("custom", dependencies=["botwire_gpio"]))

        assert loader.calls == ["botwire_gpio"]
        assert registry.find_by_driver("led") is gpio

    def test_unregister(self) -> None:
        registry = CapabilityRegistry()
        registry.unregister("botwire.plugins.ping")
        assert registry.find_by_driver("ping") is None


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestLookup:
    def test_find_by_adaptor(self) -> None:
        registry = CapabilityRegistry()
        assert registry.find_by_adaptor("loopback") is loopback
        assert registry.find_by_adaptor("test") is stub

    def test_find_by_driver(self) -> None:
        registry = CapabilityRegistry()
        assert registry.find_by_driver("ping") is ping
        assert registry.find_by_driver("test") is stub

    def test_not_found_returns_none(self) -> None:
        registry = CapabilityRegistry()
        assert registry.find_by_adaptor("sphero") is None
        assert registry.find_by_driver("servo") is None

    def test_names_ending_in_s_never_match(self) -> None:
        registry = CapabilityRegistry(load_builtins=False)
        registry.register_module("gps", plugin("gps", drivers=["gps", "sensors"]))
        assert registry.find_by_driver("gps") is None
        assert registry.find_by_driver("sensors") is None

    def test_adaptor_name_is_not_a_driver(self) -> None:
        registry = CapabilityRegistry()
        assert registry.find_by_driver("loopback") is None

    def test_first_registered_provider_wins(self) -> None:
        registry = CapabilityRegistry(load_builtins=False)
        first = plugin("first", drivers=["led"])
        second = plugin("second", drivers=["led"])
        registry.register_module("first", first)
        registry.register_module("second", second)
        assert registry.find_by_driver("led") is first

    def test_find_by_module(self) -> None:
        registry = CapabilityRegistry()
        assert registry.find_by_module("botwire.plugins.stub") is stub
        assert registry.find_by_module("botwire_nope") is None

    def test_status_report(self) -> None:
        registry = CapabilityRegistry()
        report = registry.status_report()
        assert report["botwire.plugins.loopback"]["adaptors"] == ["loopback"]
        assert report["botwire.plugins.ping"]["drivers"] == ["ping"]


# ---------------------------------------------------------------------------
# Entry point discovery
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestDiscoverPlugins:
    def test_registers_entry_points(self) -> None:
        sphero = plugin("botwire_sphero", adaptors=["sphero"], drivers=["sphero"])
        ep = MagicMock()
        ep.name = "botwire_sphero"
        ep.load.return_value = sphero

        registry = CapabilityRegistry()
        with patch("importlib.metadata.entry_points", return_value=[ep]) as eps:
            loaded = registry.discover_plugins()

        eps.assert_called_once_with(group="botwire.plugins")
        assert loaded == ["botwire_sphero"]
        assert registry.find_by_adaptor("sphero") is sphero

    def test_failing_entry_point_is_skipped(self) -> None:
        bad = MagicMock()
        bad.name = "botwire_broken"
        bad.load.side_effect = RuntimeError("boom")

        registry = CapabilityRegistry()
        with patch("importlib.metadata.entry_points", return_value=[bad]):
            loaded = registry.discover_plugins(group="custom.group")

        assert loaded == []
        assert "botwire_broken" not in registry


# ---------------------------------------------------------------------------
# Default instance
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestDefaultRegistry:
    def test_override_registry(self, registry: CapabilityRegistry) -> None:
        assert get_registry() is registry

    def test_default_created_lazily(self) -> None:
        override_registry(None)
        created = get_registry()
        assert isinstance(created, CapabilityRegistry)
        assert get_registry() is created
