"""Garden engine driver, driven through the gaol CLI."""

from __future__ import annotations

from collections.abc import Collection

from ctrbench.drivers.base import (
    CleanupError,
    Container,
    Driver,
    DriverInitError,
    OperationError,
)
from ctrbench.models.constants import EngineType
from ctrbench.utils.exec import (
    BinaryNotFoundError,
    CommandError,
    exec_cmd,
    resolve_binary,
)

DEFAULT_GAOL_BINARY = "gaol"
DEFAULT_GARDEN_COMMAND = "whoami"

_NOTHING_TO_CLEAN = ("unknown handle", "not found")


class GardenDriver(Driver):
    """Driver for Garden via gaol.

    Garden has no stop/pause/unpause in gaol; those operations are no-ops.
    """

    def __init__(self, binary: str | None = None, timeout: float | None = None):
        try:
            path = resolve_binary(binary or DEFAULT_GAOL_BINARY)
        except BinaryNotFoundError as e:
            raise DriverInitError(str(e)) from e
        super().__init__(path, timeout)

    @property
    def engine_type(self) -> EngineType:
        """Return EngineType.GARDEN."""
        return EngineType.GARDEN

    def _read_info(self) -> str:
        return "Info for Garden isn't implemented yet"

    def run(self, ctr: Container) -> tuple[str, int]:
        """Create the garden container, then run a process in it.

        Raises:
            OperationError: If either call fails; time and output of a
                successful create are included.
        """
        created, create_ms = self._exec("run", ctr, ["create", "-n", ctr.name])
        args = ["run", ctr.name]
        if not ctr.detached:
            args.append("-a")
        args += ["-c", ctr.command or DEFAULT_GARDEN_COMMAND]
        try:
            output, run_ms = self._exec("run", ctr, args)
        except OperationError as e:
            raise OperationError(
                "run",
                ctr.name,
                str(e.__cause__ or e),
                output=created + e.output,
                elapsed_ms=create_ms + e.elapsed_ms,
            ) from e
        return created + output, create_ms + run_ms

    def stop(self, ctr: Container) -> tuple[str, int]:
        """No-op."""
        return "", 0

    def remove(self, ctr: Container) -> tuple[str, int]:
        """Destroy the container with ``gaol destroy``."""
        return self._exec("remove", ctr, ["destroy", ctr.name])

    def pause(self, ctr: Container) -> tuple[str, int]:
        """No-op."""
        return "", 0

    def unpause(self, ctr: Container) -> tuple[str, int]:
        """No-op."""
        return "", 0

    def clean(self, names: Collection[str] = ()) -> None:
        """Destroy the named containers.

        Raises:
            CleanupError: If gaol fails for a reason other than the container
                already being gone.
        """
        failures = []
        for name in sorted(names):
            try:
                output, status = exec_cmd(
                    self._path, ["destroy", name], timeout=self._timeout
                )
            except CommandError as e:
                failures.append(f"{name}: {e}")
                continue
            if status != 0 and not any(m in output for m in _NOTHING_TO_CLEAN):
                failures.append(f"{name}: {output.strip()}")
        if failures:
            raise CleanupError(f"Garden: cleanup failed for {'; '.join(failures)}")
