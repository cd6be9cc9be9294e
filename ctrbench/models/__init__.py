"""Pydantic models and constants for benchmark definitions."""

from ctrbench.models.benchmark_models import BenchmarkDefinition, DriverConfig
from ctrbench.models.constants import EngineType, Operation

__all__ = [
    "BenchmarkDefinition",
    "DriverConfig",
    "EngineType",
    "Operation",
]
