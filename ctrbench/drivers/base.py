"""Base class and container handle shared by all engine drivers."""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Collection
from dataclasses import dataclass

from ctrbench.models.constants import EngineType
from ctrbench.utils.exec import CommandError, exec_timed_cmd


class DriverError(Exception):
    """Base exception for driver failures."""

    pass


class DriverInitError(DriverError):
    """Raised when a driver cannot reach its binary or daemon."""

    pass


class OperationError(DriverError):
    """Raised when a single lifecycle call against a container fails."""

    def __init__(
        self,
        operation: str,
        container: str,
        message: str,
        output: str = "",
        elapsed_ms: int = 0,
    ) -> None:
        self.operation = operation
        self.container = container
        self.output = output
        self.elapsed_ms = elapsed_ms
        super().__init__(f"{operation} {container}: {message}")


class CleanupError(DriverError):
    """Raised when cleaning the environment hits a genuine engine fault."""

    pass


@dataclass(frozen=True)
class Container:
    """Metadata for one container instance, owned by the worker that created it.

    Attributes:
        name: Unique name; the only key used to address the runtime object.
        image: Image reference, or rootfs path for binary-only engines.
        command: Optional override of the image's default command.
        detached: Whether the container is started detached.
        trace: Whether lifecycle calls for this container are traced.
        bundle: Bundle directory for engines that run from an OCI bundle.
    """

    name: str
    image: str
    command: str | None = None
    detached: bool = False
    trace: bool = False
    bundle: str | None = None


class Driver(ABC):
    """Abstract base class for container engine drivers.

    A driver adapts one engine to a small, symmetric set of lifecycle
    operations so benchmarks can stay engine-agnostic. Lifecycle calls return
    ``(output, elapsed_ms)`` and raise OperationError on failure; they never
    abort the caller. Engines that cannot support an operation return
    ``("", 0)``.

    Drivers are shared read-mostly between benchmark workers. The only
    mutable state is the memoized info string, whose computation is
    idempotent.
    """

    def __init__(
        self, path: str, timeout: float | None = None, binary: str | None = None
    ) -> None:
        """Initialize the driver.

        Args:
            path: Resolved client binary path (or daemon socket path).
            timeout: Optional per-call timeout in seconds.
            binary: Client binary used for engine calls, when path is not one.
        """
        self._path = path
        self._binary = binary or path
        self._timeout = timeout
        self._info: str | None = None
        self._info_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def engine_type(self) -> EngineType:
        """Return the engine this driver talks to."""
        pass

    @property
    def path(self) -> str:
        """Return the binary or socket path in use."""
        return self._path

    @property
    def logger(self) -> logging.Logger:
        """Get the logger for this driver."""
        from ctrbench.utils.logger import Logger

        return Logger.get(f"driver.{self.engine_type}")

    def info(self) -> str:
        """Return a human-readable identity string for the engine.

        Computed once and memoized for the lifetime of the driver.

        Raises:
            DriverInitError: If the binary or daemon is unreachable.
        """
        if self._info is not None:
            return self._info
        info = self._read_info()
        with self._info_lock:
            if self._info is None:
                self._info = info
            return self._info

    @abstractmethod
    def _read_info(self) -> str:
        """Query the engine for its identity string."""
        pass

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create(
        self,
        name: str,
        image: str,
        command: str | None = None,
        detached: bool = False,
        trace: bool = False,
    ) -> Container:
        """Allocate container metadata. No engine process is started.

        Raises:
            OperationError: If the metadata cannot be prepared.
        """
        return Container(
            name=name, image=image, command=command, detached=detached, trace=trace
        )

    @abstractmethod
    def run(self, ctr: Container) -> tuple[str, int]:
        """Create and start the container in the engine."""
        pass

    @abstractmethod
    def stop(self, ctr: Container) -> tuple[str, int]:
        """Stop (kill) a running container."""
        pass

    @abstractmethod
    def remove(self, ctr: Container) -> tuple[str, int]:
        """Remove a container from the engine."""
        pass

    @abstractmethod
    def pause(self, ctr: Container) -> tuple[str, int]:
        """Freeze a running container."""
        pass

    @abstractmethod
    def unpause(self, ctr: Container) -> tuple[str, int]:
        """Resume a paused container."""
        pass

    @abstractmethod
    def clean(self, names: Collection[str] = ()) -> None:
        """Force-stop and force-remove the named containers.

        Containers that no longer exist count as cleaned.

        Raises:
            CleanupError: On a genuine engine fault.
        """
        pass

    def prepare(self, image: str) -> None:
        """Make an image available to the engine before a benchmark starts.

        Default is a no-op for engines that do not manage images.
        """
        return None

    def close(self) -> None:
        """Release any resources held by the driver."""
        return None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _exec(
        self,
        operation: str,
        ctr: Container,
        args: list[str],
        capture_output: bool = True,
    ) -> tuple[str, int]:
        """Run one timed engine call on behalf of a lifecycle operation.

        Raises:
            OperationError: If the call fails or times out.
        """
        self.logger.debug(f"{self._binary} {' '.join(args)}")
        try:
            output, elapsed = exec_timed_cmd(
                self._binary, args, timeout=self._timeout, capture_output=capture_output
            )
        except CommandError as e:
            raise OperationError(
                operation, ctr.name, str(e), output=e.output, elapsed_ms=e.elapsed_ms
            ) from e
        if ctr.trace:
            self.logger.info(
                f"[trace] {operation} {ctr.name} ({elapsed}ms): "
                f"{' '.join(args)}\n{output.rstrip()}"
            )
        return output, elapsed

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(path={self._path!r})"
