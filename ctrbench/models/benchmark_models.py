"""Models for benchmark definitions."""

import shlex
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ctrbench.models.constants import EngineType, Operation


class DriverConfig(BaseModel):
    """Parameters for running a benchmark against one engine."""

    model_config = {"frozen": True}

    type: EngineType = Field(..., description="Engine under test (e.g., 'docker')")
    binary: str | None = Field(
        None, description="Optional client binary path or daemon socket path"
    )
    threads: int = Field(..., ge=1, description="Highest concurrency level to sweep")
    iterations: int = Field(..., ge=1, description="Iterations per thread per level")
    timeout: float | None = Field(
        None, gt=0, description="Optional per-operation timeout in seconds"
    )

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> EngineType:
        if isinstance(value, str):
            return EngineType.parse(value)
        return value  # type: ignore[no-any-return]


class BenchmarkDefinition(BaseModel):
    """A declared custom benchmark: image, engines, and command sequence."""

    model_config = {"frozen": True}

    name: str = Field(..., min_length=1, description="Benchmark name")
    image: str | None = Field(None, description="Image reference for image engines")
    command: str | None = Field(
        None, description="Optional override of the image CMD/ENTRYPOINT"
    )
    rootfs: str | None = Field(
        None, description="Root filesystem path for engines without image support"
    )
    detached: bool = Field(False, description="Start containers detached")
    drivers: list[DriverConfig] = Field(
        ..., min_length=1, description="Engines to run the benchmark against"
    )
    commands: list[str] = Field(
        ..., min_length=1, description="Ordered lifecycle command tokens"
    )

    @field_validator("command")
    @classmethod
    def _check_command(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                shlex.split(value)
            except ValueError as e:
                raise ValueError(f"Cannot parse command {value!r}: {e}") from e
        return value

    @field_validator("commands")
    @classmethod
    def _check_commands(cls, value: list[str]) -> list[str]:
        for token in value:
            Operation.parse(token)
        return value

    @model_validator(mode="after")
    def _check_engine_inputs(self) -> "BenchmarkDefinition":
        for driver in self.drivers:
            if driver.type.needs_rootfs and not self.rootfs:
                raise ValueError(
                    f"Engine '{driver.type}' requires 'rootfs' in benchmark "
                    f"'{self.name}'"
                )
            if driver.type.needs_image and not self.image:
                raise ValueError(
                    f"Engine '{driver.type}' requires 'image' in benchmark "
                    f"'{self.name}'"
                )
        return self

    def resolved_commands(self) -> list[Operation]:
        """Return the command tokens resolved to operations."""
        return [Operation.parse(token) for token in self.commands]

    def image_info(self, engine: EngineType) -> str:
        """Return what the engine should be handed as its image."""
        if engine.needs_rootfs:
            return self.rootfs or ""
        return self.image or self.rootfs or ""
