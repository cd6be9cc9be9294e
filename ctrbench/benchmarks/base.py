"""Base class for container lifecycle benchmarks.

A benchmark owns one driver and sweeps concurrency levels 1..N. At each
level it starts that many workers; each worker repeatedly creates a
uniquely named container and applies the operation sequence to it,
recording per-operation time and errors into a shared StatsCollector.
Levels run strictly one after another, separated by a barrier and a
cleanup of any containers left behind.
"""

import logging
import shlex
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from ctrbench.benchmarks.stats import RunStatistics, StatsCollector
from ctrbench.drivers.base import (
    CleanupError,
    Container,
    Driver,
    DriverError,
    OperationError,
)
from ctrbench.drivers.factory import new_driver
from ctrbench.models.constants import (
    CONTAINER_PREFIX,
    CREATE_KEY,
    EngineType,
    Operation,
)


class BenchState(Enum):
    """Benchmark lifecycle state."""

    CREATED = "created"  # constructed, no driver yet
    READY = "ready"  # driver initialized, not yet run
    RUNNING = "running"
    COMPLETED = "completed"


class BenchType(Enum):
    """Benchmark variants."""

    LIMIT = "limit"  # fixed sequence measuring the environment ceiling
    CUSTOM = "custom"  # user-declared sequence


class ConfigurationError(Exception):
    """Raised for invalid benchmark parameters or out-of-order calls."""

    pass


class BenchValidationError(Exception):
    """Raised when the pre-flight pass cannot complete the sequence."""

    def __init__(self, name: str, errors: dict[str, int]) -> None:
        self.name = name
        self.errors = errors
        failed = ", ".join(f"{op} x{count}" for op, count in sorted(errors.items()))
        super().__init__(f"Validation of benchmark '{name}' failed: {failed}")


class Bench(ABC):
    """Abstract base class for lifecycle benchmarks.

    Lifecycle:
        1. init() - construct and check the driver, variant setup (READY)
        2. validate() - optional single-container pre-flight pass
        3. run() - sweep levels 1..threads (RUNNING, then COMPLETED)
        4. stats() / elapsed() - read results

    A benchmark runs once; a new instance is needed to run again.

    Example:
        >>> bench = new_bench(BenchType.CUSTOM)
        >>> bench.init("pause-test", EngineType.DOCKER, image_info="busybox",
        ...            commands=["run", "pause", "unpause", "stop", "remove"])
        >>> bench.validate()
        >>> bench.run(threads=4, iterations=10)
        >>> for level in bench.stats():
        ...     print(level.threads, level.rate())
    """

    def __init__(self) -> None:
        """Initialize a benchmark in the CREATED state."""
        self._state = BenchState.CREATED
        self._id = uuid.uuid4().hex[:8]
        self._name = ""
        self._driver: Driver | None = None
        self._image = ""
        self._cmd_override: str | None = None
        self._detached = False
        self._trace = False
        self._commands: list[Operation] = []
        self._stats: list[RunStatistics] = []
        self._elapsed = 0.0

        # names created this session that may still exist in the engine
        self._live: set[str] = set()
        self._live_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def bench_type(self) -> BenchType:
        """Return the benchmark variant."""
        pass

    @property
    def name(self) -> str:
        """Return the benchmark name."""
        return self._name

    @property
    def driver(self) -> Driver:
        """Return the driver, once initialized.

        Raises:
            ConfigurationError: If init() has not been called.
        """
        if self._driver is None:
            raise ConfigurationError(f"Benchmark '{self._name}' is not initialized")
        return self._driver

    @property
    def commands(self) -> list[Operation]:
        """Return the operation sequence recorded at init."""
        return list(self._commands)

    def state(self) -> BenchState:
        """Return CREATED, READY, RUNNING, or COMPLETED."""
        return self._state

    def type(self) -> BenchType:
        """Return the benchmark variant."""
        return self.bench_type

    def info(self) -> str:
        """Return a string naming the driver type and the benchmark."""
        engine = self._driver.engine_type if self._driver else "uninitialized"
        return f"{engine}: {self._name}"

    def stats(self) -> list[RunStatistics]:
        """Return one RunStatistics per completed level, in level order."""
        return list(self._stats)

    def elapsed(self) -> float:
        """Return the wall time of the whole sweep in seconds."""
        return self._elapsed

    @property
    def logger(self) -> logging.Logger:
        """Get the logger for this benchmark."""
        from ctrbench.utils.logger import Logger

        return Logger.get(f"benchmark.{self.__class__.__name__}")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def init(
        self,
        name: str,
        engine_type: EngineType | str,
        binary_path: str | None = None,
        image_info: str = "",
        cmd_override: str | None = None,
        trace: bool = False,
        detached: bool = False,
        timeout: float | None = None,
        commands: Sequence[str | Operation] | None = None,
        driver: Driver | None = None,
    ) -> None:
        """Construct the driver and perform variant setup.

        Args:
            name: Benchmark name.
            engine_type: Engine to benchmark.
            binary_path: Optional client binary or socket path.
            image_info: Image reference, or rootfs path for binary engines.
            cmd_override: Optional override of the image's default command.
            trace: Trace every lifecycle call.
            detached: Start containers detached.
            timeout: Optional per-operation timeout in seconds.
            commands: Operation sequence (ignored by fixed-sequence variants).
            driver: Pre-built driver to use instead of constructing one.

        Raises:
            ConfigurationError: If called twice, if cmd_override cannot be
                split into arguments, or if the variant rejects its input.
            DriverInitError: If the driver cannot reach its engine.
        """
        if self._state != BenchState.CREATED:
            raise ConfigurationError(
                f"Benchmark '{name}' already initialized (state: {self._state.value})"
            )
        self._name = name
        self._image = image_info
        self._cmd_override = cmd_override
        self._trace = trace
        self._detached = detached

        if cmd_override:
            try:
                shlex.split(cmd_override)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid command override {cmd_override!r}: {e}"
                ) from e

        self._setup(image_info, commands)

        self._driver = driver or new_driver(engine_type, binary_path, timeout)
        self._driver.prepare(image_info)
        self._state = BenchState.READY
        self.logger.info(f"Initialized {self.info()}")

    @abstractmethod
    def _setup(
        self, image_info: str, commands: Sequence[str | Operation] | None
    ) -> None:
        """Variant-specific setup; sets self._commands.

        Raises:
            ConfigurationError: If the variant rejects its input.
        """
        pass

    def validate(self) -> None:
        """Run the operation sequence once on a single container.

        Statistics from this pass are discarded.

        Raises:
            ConfigurationError: If the benchmark is not READY.
            BenchValidationError: If any step of the pass failed.
        """
        if self._state != BenchState.READY:
            raise ConfigurationError(
                f"Cannot validate benchmark '{self._name}' in state "
                f"{self._state.value}"
            )
        self.logger.info(f"Validating {self.info()}")
        collector = StatsCollector()
        self._worker("validate", 0, 1, self._commands, collector)
        self._clean()

        result = collector.seal(threads=1, iterations=1, elapsed_ms=0)
        if result.total_errors:
            failed = {op: n for op, n in result.errors.items() if n}
            raise BenchValidationError(self._name, failed)

    def run(
        self,
        threads: int,
        iterations: int,
        commands: Sequence[str | Operation] | None = None,
    ) -> list[RunStatistics]:
        """Sweep concurrency levels 1..threads.

        Args:
            threads: Highest concurrency level.
            iterations: Iterations per worker per level.
            commands: Operation sequence; defaults to the one given at init.

        Returns:
            One RunStatistics per level.

        Raises:
            ConfigurationError: On bad parameters, unknown commands, or when
                the benchmark is not READY.
        """
        if self._state != BenchState.READY:
            raise ConfigurationError(
                f"Cannot run benchmark '{self._name}' in state {self._state.value}"
            )
        if threads < 1:
            raise ConfigurationError(f"threads must be at least 1, got {threads}")
        if iterations < 1:
            raise ConfigurationError(
                f"iterations must be at least 1, got {iterations}"
            )
        operations = self._resolve_run_commands(commands)
        if not operations:
            raise ConfigurationError(f"Benchmark '{self._name}' has no commands")

        self._state = BenchState.RUNNING
        self.logger.info(
            f"Running {self.info()}: {threads} thread(s) x {iterations} "
            f"iteration(s) of [{', '.join(operations)}]"
        )
        start = time.perf_counter()
        try:
            for level in range(1, threads + 1):
                self._stats.append(self._run_level(level, iterations, operations))
        finally:
            self._clean()
            self._elapsed = time.perf_counter() - start
            self._state = BenchState.COMPLETED
        self.logger.info(f"Completed {self.info()} in {self._elapsed:.2f}s")
        return self.stats()

    def close(self) -> None:
        """Release the driver's resources."""
        if self._driver is not None:
            self._driver.close()

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _resolve_run_commands(
        self, commands: Sequence[str | Operation] | None
    ) -> list[Operation]:
        if commands is None:
            return list(self._commands)
        return resolve_operations(commands)

    def _run_level(
        self, level: int, iterations: int, operations: list[Operation]
    ) -> RunStatistics:
        """Run one level: start workers, wait for all, clean, seal."""
        self.logger.info(f"Level {level}: starting {level} worker(s)")
        collector = StatsCollector()

        start = time.perf_counter()
        with ThreadPoolExecutor(
            max_workers=level, thread_name_prefix=f"{CONTAINER_PREFIX}-t{level}"
        ) as pool:
            futures = [
                pool.submit(
                    self._worker, f"t{level}", worker, iterations, operations, collector
                )
                for worker in range(level)
            ]
            # barrier; re-raises anything unexpected from a worker
            for future in futures:
                future.result()
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        self._clean()
        stats = collector.seal(
            threads=level, iterations=iterations, elapsed_ms=elapsed_ms
        )
        self.logger.info(
            f"Level {level}: {stats.rate():.2f} iterations/s, "
            f"{stats.total_errors} error(s)"
        )
        return stats

    def _worker(
        self,
        level: str,
        worker: int,
        iterations: int,
        operations: list[Operation],
        collector: StatsCollector,
    ) -> None:
        driver = self.driver
        for iteration in range(iterations):
            name = self.container_name(level, worker, iteration)
            try:
                ctr = driver.create(
                    name,
                    self._image,
                    self._cmd_override,
                    self._detached,
                    self._trace,
                )
            except DriverError as e:
                self.logger.warning(f"Failed to create {name}: {e}")
                collector.record_error(CREATE_KEY)
                continue
            self._track(name)

            for operation in operations:
                self._apply(driver, operation, ctr, collector)

    def _apply(
        self,
        driver: Driver,
        operation: Operation,
        ctr: Container,
        collector: StatsCollector,
    ) -> None:
        """Dispatch one operation and record its outcome.

        Failures are counted and logged; the sequence carries on.
        """
        call = _dispatch_table(driver)[operation]
        if operation == Operation.RUN:
            self._track(ctr.name)
        try:
            _, elapsed_ms = call(ctr)
        except OperationError as e:
            self.logger.warning(f"{e} (output: {e.output.strip()})")
            collector.record(operation.value, e.elapsed_ms, error=True)
            return
        except DriverError as e:
            self.logger.warning(f"{operation} {ctr.name}: {e}")
            collector.record(operation.value, 0, error=True)
            return
        collector.record(operation.value, elapsed_ms)
        if operation == Operation.REMOVE:
            self._untrack(ctr.name)

    def container_name(self, level: str, worker: int, iteration: int) -> str:
        """Return a name unique to this benchmark, level, worker, and iteration."""
        return f"{CONTAINER_PREFIX}-{self._id}-{level}-w{worker}-iter-{iteration}"

    # -------------------------------------------------------------------------
    # Cleanup registry
    # -------------------------------------------------------------------------

    def _track(self, name: str) -> None:
        with self._live_lock:
            self._live.add(name)

    def _untrack(self, name: str) -> None:
        with self._live_lock:
            self._live.discard(name)

    @property
    def leftover_containers(self) -> set[str]:
        """Return names created this session that may still exist."""
        with self._live_lock:
            return set(self._live)

    def _clean(self) -> None:
        """Ask the driver to remove leftovers. Failures are logged, not raised."""
        if self._driver is None:
            return
        names = self.leftover_containers
        try:
            self._driver.clean(names)
        except CleanupError as e:
            self.logger.warning(f"Cleanup failed: {e}")
            return
        with self._live_lock:
            self._live -= names


def resolve_operations(commands: Sequence[str | Operation]) -> list[Operation]:
    """Resolve command tokens to operations.

    Raises:
        ConfigurationError: If a token does not name a known operation.
    """
    try:
        return [Operation.parse(token) for token in commands]
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def _dispatch_table(
    driver: Driver,
) -> dict[Operation, Callable[[Container], tuple[str, int]]]:
    return {
        Operation.RUN: driver.run,
        Operation.STOP: driver.stop,
        Operation.REMOVE: driver.remove,
        Operation.PAUSE: driver.pause,
        Operation.UNPAUSE: driver.unpause,
    }
