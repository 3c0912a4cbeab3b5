"""botwire — Wire adaptors and drivers into robots.

botwire coordinates heterogeneous hardware for robotics / IoT control
programs.  A Robot aggregates named connections (adaptor plugins) and named
devices (driver plugins), wires every device to a connection, resolves the
plugin implementations through a capability registry, starts everything in
order and then runs user-supplied work.

Architecture layers (bottom to top):
    1. Plugins       — Adaptor/Driver base classes, capability registry
    2. Orchestration — connection/device factories, Robot lifecycle
    3. Events        — observer channel for "ready" / "error"
"""

__version__ = "0.1.0"
__author__ = "botwire Contributors"
__license__ = "Apache-2.0"

from botwire.orchestration.robot import Robot
from botwire.plugins.registry import CapabilityRegistry, get_registry

__all__ = [
    "__version__",
    "Robot",
    "CapabilityRegistry",
    "get_registry",
]
