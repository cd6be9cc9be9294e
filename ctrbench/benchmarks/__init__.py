"""Benchmark subsystem for ctrbench.

Sweeps container lifecycle operations over increasing concurrency against
an engine driver and collects per-level statistics.
"""

from ctrbench.benchmarks.base import (
    Bench,
    BenchState,
    BenchType,
    BenchValidationError,
    ConfigurationError,
)
from ctrbench.benchmarks.custom import CustomBench
from ctrbench.benchmarks.factory import new_bench
from ctrbench.benchmarks.limit import LimitBench
from ctrbench.benchmarks.results import OutputFormat, SessionResults
from ctrbench.benchmarks.stats import RunStatistics, StatsCollector

__all__ = [
    "Bench",
    "BenchState",
    "BenchType",
    "BenchValidationError",
    "ConfigurationError",
    "CustomBench",
    "LimitBench",
    "OutputFormat",
    "RunStatistics",
    "SessionResults",
    "StatsCollector",
    "new_bench",
]
