"""Orchestration layer — Robot lifecycle states."""

from __future__ import annotations

from enum import Enum


class RobotState(str, Enum):
    CONSTRUCTED = "constructed"
    CONNECTIONS_INITIALIZED = "connections_initialized"
    DEVICES_INITIALIZED = "devices_initialized"
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    HALTING = "halting"
