"""Driver factory: construct the driver for an engine type.

Adding an engine means adding a Driver subclass and an entry here; the
benchmark executor never changes.
"""

from ctrbench.drivers.base import Driver
from ctrbench.models.constants import EngineType


def new_driver(
    engine_type: EngineType | str,
    path: str | None = None,
    timeout: float | None = None,
) -> Driver:
    """Construct and validate a driver for the given engine.

    Args:
        engine_type: Engine to drive.
        path: Optional client binary path, or socket path for containerd.
        timeout: Optional per-call timeout in seconds.

    Returns:
        A driver whose binary was resolved and whose engine answered.

    Raises:
        DriverInitError: If the binary or daemon is unreachable.
        ValueError: If the engine type is unknown.
    """
    engine_type = EngineType.parse(engine_type)

    if engine_type == EngineType.DOCKER:
        from ctrbench.drivers.docker import DockerDriver

        return DockerDriver(path, timeout)
    if engine_type == EngineType.RUNC:
        from ctrbench.drivers.runc import RuncDriver

        return RuncDriver(path, timeout)
    if engine_type == EngineType.CTR:
        from ctrbench.drivers.ctr import CtrDriver

        return CtrDriver(path, timeout)
    if engine_type == EngineType.CONTAINERD:
        from ctrbench.drivers.containerd import ContainerdDriver

        return ContainerdDriver(path, timeout)
    if engine_type == EngineType.GARDEN:
        from ctrbench.drivers.garden import GardenDriver

        return GardenDriver(path, timeout)

    raise ValueError(f"No driver for engine type: {engine_type}")
