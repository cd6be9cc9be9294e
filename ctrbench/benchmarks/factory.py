"""Benchmark factory."""

from ctrbench.benchmarks.base import Bench, BenchType
from ctrbench.benchmarks.custom import CustomBench
from ctrbench.benchmarks.limit import LimitBench


def new_bench(bench_type: BenchType) -> Bench:
    """Create a benchmark of the selected variant in the CREATED state.

    Raises:
        ValueError: If the variant is unknown.
    """
    if bench_type == BenchType.LIMIT:
        return LimitBench()
    if bench_type == BenchType.CUSTOM:
        return CustomBench()
    raise ValueError(f"No such benchmark type: {bench_type}")
