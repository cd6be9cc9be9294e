"""Custom benchmark: a declared sequence of lifecycle operations."""

from collections.abc import Sequence

from ctrbench.benchmarks.base import (
    Bench,
    BenchType,
    ConfigurationError,
    resolve_operations,
)
from ctrbench.models.constants import Operation


class CustomBench(Bench):
    """Benchmark running the operation sequence given at init."""

    @property
    def bench_type(self) -> BenchType:
        """Return BenchType.CUSTOM."""
        return BenchType.CUSTOM

    def _setup(
        self, image_info: str, commands: Sequence[str | Operation] | None
    ) -> None:
        if not commands:
            raise ConfigurationError(
                f"Custom benchmark '{self._name}' declares no commands"
            )
        self._commands = resolve_operations(commands)
