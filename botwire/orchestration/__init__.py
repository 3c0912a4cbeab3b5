"""Orchestration layer — connection/device factories and the Robot lifecycle."""

from botwire.orchestration.connection import init_connection
from botwire.orchestration.device import DeviceSpec, init_device
from botwire.orchestration.robot import Robot
from botwire.orchestration.state import RobotState

__all__ = [
    "Robot",
    "RobotState",
    "DeviceSpec",
    "init_connection",
    "init_device",
]
