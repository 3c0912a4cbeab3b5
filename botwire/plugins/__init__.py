"""Plugin layer — Adaptor/Driver base classes and the capability registry."""

from botwire.plugins.base import Adaptor, Driver
from botwire.plugins.registry import (
    CapabilityRegistry,
    ModuleRecord,
    get_registry,
    override_registry,
)

__all__ = [
    "Adaptor",
    "Driver",
    "CapabilityRegistry",
    "ModuleRecord",
    "get_registry",
    "override_registry",
]
