"""Engine drivers: one adapter per container engine under test."""

from ctrbench.drivers.base import (
    CleanupError,
    Container,
    Driver,
    DriverError,
    DriverInitError,
    OperationError,
)
from ctrbench.drivers.factory import new_driver

__all__ = [
    "CleanupError",
    "Container",
    "Driver",
    "DriverError",
    "DriverInitError",
    "OperationError",
    "new_driver",
]
