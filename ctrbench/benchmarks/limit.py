"""Limit benchmark: a fixed run/stop/remove cycle.

Measures the environment's sustainable container churn independent of any
declared sequence, so custom results can be read against a ceiling.
"""

from collections.abc import Sequence

from ctrbench.benchmarks.base import Bench, BenchType, ConfigurationError
from ctrbench.models.constants import LIMIT_OPERATIONS, Operation


class LimitBench(Bench):
    """Benchmark running the fixed LIMIT_OPERATIONS sequence."""

    @property
    def bench_type(self) -> BenchType:
        """Return BenchType.LIMIT."""
        return BenchType.LIMIT

    def _setup(
        self, image_info: str, commands: Sequence[str | Operation] | None
    ) -> None:
        if not image_info:
            raise ConfigurationError(
                f"Limit benchmark '{self._name}' needs an image or rootfs"
            )
        if commands:
            self.logger.debug("Limit benchmark ignores declared commands")
        self._commands = list(LIMIT_OPERATIONS)

    def _resolve_run_commands(
        self, commands: Sequence[str | Operation] | None
    ) -> list[Operation]:
        return list(LIMIT_OPERATIONS)
