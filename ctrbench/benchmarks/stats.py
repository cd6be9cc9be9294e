"""Per-level statistics: a lock-protected collector and its sealed snapshot."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class RunStatistics:
    """Accumulated per-operation statistics for one concurrency level.

    Durations are sums in milliseconds, not samples; divide by the matching
    count for an average.

    Attributes:
        threads: Number of concurrent workers at this level.
        iterations: Iterations each worker performed.
        elapsed_ms: Wall time of the level, from first worker start to barrier.
        durations: Operation name -> summed elapsed milliseconds.
        counts: Operation name -> number of calls made.
        errors: Operation name -> number of failed calls.
    """

    threads: int
    iterations: int
    elapsed_ms: int = 0
    durations: Mapping[str, int] = field(default_factory=dict)
    counts: Mapping[str, int] = field(default_factory=dict)
    errors: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # copy and freeze so the snapshot never changes under a reader
        for name in ("durations", "counts", "errors"):
            object.__setattr__(
                self, name, MappingProxyType(dict(getattr(self, name)))
            )

    @property
    def total_errors(self) -> int:
        """Return the number of failed calls across all operations."""
        return sum(self.errors.values())

    def average_ms(self, operation: str) -> float:
        """Return the mean duration of an operation in milliseconds."""
        count = self.counts.get(operation, 0)
        if count == 0:
            return 0.0
        return self.durations.get(operation, 0) / count

    def rate(self) -> float:
        """Return completed operation sequences per second for this level."""
        if self.elapsed_ms <= 0:
            return 0.0
        return (self.threads * self.iterations) / (self.elapsed_ms / 1000)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "threads": self.threads,
            "iterations": self.iterations,
            "elapsed_ms": self.elapsed_ms,
            "rate": self.rate(),
            "durations": dict(self.durations),
            "counts": dict(self.counts),
            "errors": dict(self.errors),
        }


class StatsCollector:
    """Thread-safe accumulator shared by all workers of one level.

    Example:
        >>> collector = StatsCollector()
        >>> collector.record("run", 12)
        >>> collector.record("stop", 3, error=True)
        >>> stats = collector.seal(threads=1, iterations=1, elapsed_ms=20)
        >>> stats.errors["stop"]
        1
    """

    def __init__(self) -> None:
        """Initialize an empty, unsealed collector."""
        self._lock = threading.Lock()
        self._durations: dict[str, int] = {}
        self._counts: dict[str, int] = {}
        self._errors: dict[str, int] = {}
        self._sealed = False

    def record(self, operation: str, elapsed_ms: int, error: bool = False) -> None:
        """Merge one call's elapsed time and outcome.

        Args:
            operation: Operation name.
            elapsed_ms: Wall time of the call in milliseconds.
            error: Whether the call failed.

        Raises:
            RuntimeError: If the collector has been sealed.
        """
        with self._lock:
            if self._sealed:
                raise RuntimeError("Cannot record into sealed statistics")
            self._durations[operation] = self._durations.get(operation, 0) + elapsed_ms
            self._counts[operation] = self._counts.get(operation, 0) + 1
            if error:
                self._errors[operation] = self._errors.get(operation, 0) + 1
            else:
                self._errors.setdefault(operation, 0)

    def record_error(self, operation: str) -> None:
        """Count a failure that has no associated call time.

        Raises:
            RuntimeError: If the collector has been sealed.
        """
        with self._lock:
            if self._sealed:
                raise RuntimeError("Cannot record into sealed statistics")
            self._errors[operation] = self._errors.get(operation, 0) + 1

    def seal(self, threads: int, iterations: int, elapsed_ms: int) -> RunStatistics:
        """Freeze the collector and return its snapshot.

        Args:
            threads: Concurrency level the samples were taken at.
            iterations: Iterations per worker.
            elapsed_ms: Wall time of the level.

        Returns:
            Immutable RunStatistics.
        """
        with self._lock:
            self._sealed = True
            return RunStatistics(
                threads=threads,
                iterations=iterations,
                elapsed_ms=elapsed_ms,
                durations=self._durations,
                counts=self._counts,
                errors=self._errors,
            )

    @property
    def sealed(self) -> bool:
        """Return True once seal() has been called."""
        return self._sealed
