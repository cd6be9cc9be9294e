#!/usr/bin/env python3
"""ctrbench CLI - Command-line interface for container lifecycle benchmarks."""

import click

from ctrbench.models.constants import DEFAULT_LIMIT_ITERATIONS, DEFAULT_LIMIT_THREADS
from ctrbench.utils.env import (
    LIMIT_ITERATIONS_VAR,
    LIMIT_THREADS_VAR,
    LOG_LEVEL_VAR,
    TRACE_VAR,
    EnvVarTypeError,
    get_env,
)
from ctrbench.utils.logger import Logger

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _env_default(name, default, as_type):
    """Return a click default callback reading a typed environment variable."""

    def read():
        try:
            return get_env(name, default=default, as_type=as_type)
        except EnvVarTypeError as e:
            raise click.BadParameter(str(e)) from e

    return read


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=lambda: get_env(LOG_LEVEL_VAR, default="INFO").upper(),
    show_default="INFO or $CTRBENCH_LOG_LEVEL",
    help="Logging verbosity",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write logs to this file instead of stderr",
)
def ctrbench(log_level, log_file):
    """Benchmark the lifecycle operations of container engines."""
    # Configure logger at startup if not already configured
    if log_file or not Logger.is_configured():
        Logger.configure(
            level=log_level, output=log_file, timestamps=True, include_thread=True
        )
    else:
        Logger.set_level(log_level)


@ctrbench.command()
@click.option(
    "--benchmark",
    "-b",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Benchmark definition file (YAML or JSON)",
)
@click.option(
    "--skip-limit",
    "-s",
    is_flag=True,
    default=False,
    help="Skip the limit benchmark",
)
@click.option(
    "--trace",
    "-t",
    is_flag=True,
    flag_value=True,
    default=_env_default(TRACE_VAR, False, bool),
    show_default="off or $CTRBENCH_TRACE",
    help="Log every engine call with its output",
)
@click.option(
    "--limit-threads",
    type=click.IntRange(min=1),
    default=_env_default(LIMIT_THREADS_VAR, DEFAULT_LIMIT_THREADS, int),
    show_default=f"{DEFAULT_LIMIT_THREADS} or $CTRBENCH_LIMIT_THREADS",
    help="Highest concurrency level of the limit benchmark",
)
@click.option(
    "--limit-iterations",
    type=click.IntRange(min=1),
    default=_env_default(LIMIT_ITERATIONS_VAR, DEFAULT_LIMIT_ITERATIONS, int),
    show_default=f"{DEFAULT_LIMIT_ITERATIONS} or $CTRBENCH_LIMIT_ITERATIONS",
    help="Iterations per worker of the limit benchmark",
)
@click.option(
    "--output",
    "-o",
    "outputs",
    multiple=True,
    type=click.Path(dir_okay=False),
    help="Also write results to file (.json, .yaml, else text; repeatable)",
)
@click.option(
    "--skip-validate",
    is_flag=True,
    default=False,
    help="Skip the single-container pre-flight pass",
)
def run(
    benchmark,
    skip_limit,
    trace,
    limit_threads,
    limit_iterations,
    outputs,
    skip_validate,
):
    r"""Run a benchmark definition against every engine it lists.

    \b
    Examples:
      ctrbench run -b examples/docker-basic.yaml
      ctrbench run -b examples/runc.yaml -s -t
      ctrbench run -b examples/pause-unpause.yaml -o results.json
    """
    from ctrbench.commands.run_cmd import run_benchmarks

    run_benchmarks(
        benchmark,
        skip_limit=skip_limit,
        trace=trace,
        limit_threads=limit_threads,
        limit_iterations=limit_iterations,
        outputs=tuple(outputs),
        validate=not skip_validate,
    )


@ctrbench.command()
@click.option(
    "--benchmark",
    "-b",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Benchmark definition file (YAML or JSON)",
)
def validate(benchmark):
    """Check a benchmark definition without contacting any engine."""
    from ctrbench.commands.run_cmd import validate_definition

    validate_definition(benchmark)


@ctrbench.command()
@click.option("--verbose", "-v", is_flag=True, help="Show detailed version information")
def version(verbose):
    """Display ctrbench version information."""
    from ctrbench.commands.version_cmd import run_version

    if verbose:
        Logger.set_level("DEBUG")

    run_version(verbose=verbose)


if __name__ == "__main__":
    ctrbench()
