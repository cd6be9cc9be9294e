"""Shared fixtures for ctrbench tests."""

import threading
from collections.abc import Callable, Collection
from io import StringIO

import pytest

from ctrbench.drivers.base import CleanupError, Container, Driver, OperationError
from ctrbench.models.constants import EngineType
from ctrbench.utils.logger import Logger


@pytest.fixture(autouse=True)
def log_output():
    """Configure logging into a buffer for every test."""
    output = StringIO()
    Logger.configure(level="DEBUG", output=output, timestamps=False)
    return output


class StubDriver(Driver):
    """In-memory driver where every call takes a fixed, reported time.

    Args:
        elapsed_ms: Time reported by every successful call.
        fail: Predicate (operation, container name) -> True to fail the call.
        fail_create: Predicate on the container name to fail handle creation.
        fail_clean: Make clean() raise CleanupError.
    """

    def __init__(
        self,
        elapsed_ms: int = 10,
        fail: Callable[[str, str], bool] | None = None,
        fail_create: Callable[[str], bool] | None = None,
        fail_clean: bool = False,
    ) -> None:
        super().__init__("/usr/bin/stub")
        self.elapsed_ms = elapsed_ms
        self._fail = fail or (lambda op, name: False)
        self._fail_create = fail_create or (lambda name: False)
        self._fail_clean = fail_clean
        self._lock = threading.Lock()
        self.calls: list[tuple[str, str]] = []
        self.created: list[str] = []
        self.cleaned: list[set[str]] = []
        self.prepared: list[str] = []
        self.closed = False
        self.info_reads = 0

    @property
    def engine_type(self) -> EngineType:
        return EngineType.DOCKER

    def _read_info(self) -> str:
        self.info_reads += 1
        return "stub driver"

    def create(self, name, image, command=None, detached=False, trace=False):
        if self._fail_create(name):
            raise OperationError("create", name, "refused")
        with self._lock:
            self.created.append(name)
        return super().create(name, image, command, detached, trace)

    def _call(self, operation: str, ctr: Container) -> tuple[str, int]:
        with self._lock:
            self.calls.append((operation, ctr.name))
        if self._fail(operation, ctr.name):
            raise OperationError(
                operation, ctr.name, "exit status 1", elapsed_ms=self.elapsed_ms
            )
        return "", self.elapsed_ms

    def run(self, ctr):
        return self._call("run", ctr)

    def stop(self, ctr):
        return self._call("stop", ctr)

    def remove(self, ctr):
        return self._call("remove", ctr)

    def pause(self, ctr):
        return self._call("pause", ctr)

    def unpause(self, ctr):
        return self._call("unpause", ctr)

    def clean(self, names: Collection[str] = ()) -> None:
        with self._lock:
            self.cleaned.append(set(names))
        if self._fail_clean:
            raise CleanupError("engine unavailable")

    def prepare(self, image: str) -> None:
        self.prepared.append(image)

    def close(self) -> None:
        self.closed = True

    def ops_for(self, operation: str) -> list[str]:
        """Return container names the operation was called on."""
        return [name for op, name in self.calls if op == operation]


@pytest.fixture
def stub_driver():
    """A StubDriver reporting 10ms per call."""
    return StubDriver()
