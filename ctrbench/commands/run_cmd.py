"""Run command - execute a benchmark definition against its engines.

CLI Examples:
    ctrbench run -b examples/docker-basic.yaml            # Limit + custom runs
    ctrbench run -b examples/docker-basic.yaml -s         # Skip the limit run
    ctrbench run -b examples/runc.yaml -o results.json    # Also write JSON
    ctrbench validate -b examples/docker-basic.yaml       # Check definition only
"""

import json
import sys
from pathlib import Path
from typing import Any

import click
import yaml  # type: ignore[import-untyped, unused-ignore]
from pydantic import ValidationError

from ctrbench.benchmarks.base import (
    Bench,
    BenchType,
    BenchValidationError,
    ConfigurationError,
)
from ctrbench.benchmarks.factory import new_bench
from ctrbench.benchmarks.results import OutputFormat, SessionResults
from ctrbench.drivers.base import DriverError
from ctrbench.models.benchmark_models import BenchmarkDefinition, DriverConfig
from ctrbench.utils.logger import Logger


class DefinitionError(Exception):
    """Raised when a benchmark definition file cannot be loaded."""

    pass


def load_definition(path: str | Path) -> BenchmarkDefinition:
    """Load and validate a benchmark definition from YAML or JSON.

    Raises:
        DefinitionError: If the file is missing, unparsable, or invalid.
    """
    path = Path(path)
    if not path.exists():
        raise DefinitionError(f"Benchmark file not found: {path}")

    try:
        content = path.read_text()
        data: Any
        if path.suffix == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise DefinitionError(f"Failed to parse benchmark file {path}: {e}") from e

    if not isinstance(data, dict):
        raise DefinitionError(f"Benchmark file {path} must be a mapping")

    try:
        return BenchmarkDefinition.model_validate(data)
    except ValidationError as e:
        raise DefinitionError(f"Invalid benchmark definition {path}:\n{e}") from e


def _load_or_exit(path: str) -> BenchmarkDefinition:
    try:
        return load_definition(path)
    except DefinitionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _init_bench(
    bench: Bench,
    name: str,
    definition: BenchmarkDefinition,
    config: DriverConfig,
    trace: bool,
) -> None:
    bench.init(
        name,
        config.type,
        binary_path=config.binary,
        image_info=definition.image_info(config.type),
        cmd_override=definition.command,
        trace=trace,
        detached=definition.detached,
        timeout=config.timeout,
        commands=definition.resolved_commands(),
    )


def run_limit(
    definition: BenchmarkDefinition,
    threads: int,
    iterations: int,
    trace: bool,
    results: SessionResults,
) -> bool:
    """Run the limit benchmark against the first declared engine.

    Returns:
        True on success, False if the pairing failed.
    """
    config = definition.drivers[0]
    log = Logger.get("commands.run")
    bench = new_bench(BenchType.LIMIT)
    try:
        _init_bench(bench, "Limit", definition, config, trace)
        bench.run(threads, iterations)
    except (DriverError, ConfigurationError) as e:
        log.error(f"Limit benchmark on {config.type} failed: {e}")
        results.add_error(f"{config.type}: Limit", str(e))
        return False
    finally:
        bench.close()
    results.add_bench(bench)
    return True


def run_custom(
    definition: BenchmarkDefinition,
    config: DriverConfig,
    trace: bool,
    validate: bool,
    results: SessionResults,
) -> bool:
    """Run the declared benchmark against one engine.

    Returns:
        True on success, False if the pairing failed.
    """
    log = Logger.get("commands.run")
    bench = new_bench(BenchType.CUSTOM)
    try:
        _init_bench(bench, definition.name, definition, config, trace)
        if validate:
            bench.validate()
        bench.run(config.threads, config.iterations)
    except (DriverError, ConfigurationError, BenchValidationError) as e:
        log.error(f"Benchmark '{definition.name}' on {config.type} failed: {e}")
        results.add_error(f"{config.type}: {definition.name}", str(e))
        return False
    finally:
        bench.close()
    results.add_bench(bench)
    return True


def run_benchmarks(
    benchmark_file: str,
    skip_limit: bool = False,
    trace: bool = False,
    limit_threads: int = 1,
    limit_iterations: int = 1,
    outputs: tuple[str, ...] = (),
    validate: bool = True,
) -> None:
    """Run the limit benchmark and every benchmark-driver pairing.

    A failed pairing does not stop the others; the process exits non-zero
    at the end if any pairing failed.
    """
    definition = _load_or_exit(benchmark_file)
    results = SessionResults()
    ok = True

    if not skip_limit:
        ok &= run_limit(definition, limit_threads, limit_iterations, trace, results)

    for config in definition.drivers:
        ok &= run_custom(definition, config, trace, validate, results)

    click.echo()
    results.emit(sys.stdout, OutputFormat.TEXT)
    for output in outputs:
        results.emit(output, OutputFormat.from_path(output))
        click.echo(f"\nResults saved to: {output}")

    if not ok:
        sys.exit(1)


def validate_definition(benchmark_file: str) -> None:
    """Load a benchmark definition and print the resolved plan."""
    definition = _load_or_exit(benchmark_file)

    click.echo(f"Benchmark: {definition.name}")
    click.echo("-" * 40)
    if definition.image:
        click.echo(f"Image:    {definition.image}")
    if definition.rootfs:
        click.echo(f"Rootfs:   {definition.rootfs}")
    if definition.command:
        click.echo(f"Command:  {definition.command}")
    click.echo(f"Detached: {definition.detached}")
    sequence = ", ".join(op.value for op in definition.resolved_commands())
    click.echo(f"Sequence: {sequence}")
    click.echo("\nDrivers:")
    for config in definition.drivers:
        binary = f" ({config.binary})" if config.binary else ""
        click.echo(
            f"  {config.type}{binary}: {config.threads} thread(s) x "
            f"{config.iterations} iteration(s)"
        )
    click.echo("\n✓ Definition is valid")
