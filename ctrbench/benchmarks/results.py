"""Session results collection and emission.

Supports multiple output formats: JSON, YAML, and a text table for stdout.

Usage:
    from ctrbench.benchmarks.results import SessionResults, OutputFormat

    results = SessionResults()
    results.add_bench(limit_bench)
    results.add_bench(custom_bench)
    results.add_error("docker: my-bench", "Binary not found or not executable")

    results.emit("results.json", OutputFormat.JSON)
    results.emit(sys.stdout, OutputFormat.TEXT)
"""

import json
import sys
from datetime import UTC, datetime
from enum import Enum
from io import StringIO
from pathlib import Path
from typing import Any, TextIO

import psutil
import yaml  # type: ignore[import-untyped, unused-ignore]

from ctrbench.benchmarks.base import Bench
from ctrbench.benchmarks.stats import RunStatistics


class OutputFormat(Enum):
    """Supported output formats for session results."""

    JSON = "json"
    YAML = "yaml"
    TEXT = "text"  # Human-readable table for stdout

    @classmethod
    def from_path(cls, path: str | Path) -> "OutputFormat":
        """Pick a format from a file extension (.json, .yaml/.yml, else text)."""
        suffix = Path(path).suffix.lower()
        if suffix == ".json":
            return cls.JSON
        if suffix in (".yaml", ".yml"):
            return cls.YAML
        return cls.TEXT


class SessionResults:
    """Results of every benchmark-driver pairing run in one session.

    Example:
        >>> results = SessionResults()
        >>> results.add_bench(bench)
        >>> results.emit(sys.stdout, OutputFormat.TEXT)
    """

    def __init__(self) -> None:
        """Initialize empty results collection."""
        self._results: list[dict[str, Any]] = []
        self._errors: dict[str, str] = {}
        self._metadata: dict[str, Any] = {
            "timestamp_start": datetime.now(UTC).isoformat(),
            "timestamp_end": None,
            "ctrbench_version": self._get_version(),
            "host": {
                "cpu_count": psutil.cpu_count(logical=True),
                "memory_total_bytes": psutil.virtual_memory().total,
            },
        }

    def _get_version(self) -> str:
        try:
            from ctrbench import __version__

            return str(__version__)
        except (ImportError, AttributeError):
            return "unknown"

    def add_bench(self, bench: Bench) -> None:
        """Add the statistics of a completed benchmark.

        Args:
            bench: Benchmark whose run() has returned.
        """
        driver = bench.driver
        self.add_result(
            name=bench.name,
            bench_type=bench.type().value,
            engine=str(driver.engine_type),
            driver_info=driver.info(),
            elapsed=bench.elapsed(),
            stats=bench.stats(),
        )

    def add_result(
        self,
        name: str,
        bench_type: str,
        engine: str,
        driver_info: str,
        elapsed: float,
        stats: list[RunStatistics],
    ) -> None:
        """Add the statistics of one benchmark-driver pairing."""
        self._results.append(
            {
                "name": name,
                "type": bench_type,
                "engine": engine,
                "driver_info": driver_info,
                "elapsed_seconds": elapsed,
                "iterations": stats[0].iterations if stats else 0,
                "levels": [s.to_dict() for s in stats],
            }
        )

    def add_error(self, pairing: str, error: str) -> None:
        """Record a pairing that could not be run.

        Args:
            pairing: Pairing label, e.g. "docker: my-bench".
            error: Error message.
        """
        self._errors[pairing] = error

    def finalize(self) -> None:
        """Mark results as complete, setting end timestamp."""
        self._metadata["timestamp_end"] = datetime.now(UTC).isoformat()

    @property
    def results(self) -> list[dict[str, Any]]:
        """Get raw results list."""
        return list(self._results)

    @property
    def errors(self) -> dict[str, str]:
        """Get error dictionary."""
        return self._errors.copy()

    def to_dict(self) -> dict[str, Any]:
        """Convert results to a dictionary for serialization."""
        return {
            "metadata": self._metadata,
            "results": self._results,
            "errors": self._errors if self._errors else None,
        }

    # -------------------------------------------------------------------------
    # Emission Methods
    # -------------------------------------------------------------------------

    def emit(
        self,
        output: str | Path | TextIO,
        format: OutputFormat = OutputFormat.JSON,
        indent: int = 2,
    ) -> None:
        """Emit results to a file or stream.

        Args:
            output: File path or file-like object (e.g., sys.stdout).
            format: Output format (JSON, YAML, TEXT).
            indent: Indentation level for JSON/YAML.
        """
        self.finalize()

        if format == OutputFormat.JSON:
            content = json.dumps(self.to_dict(), indent=indent, default=str)
        elif format == OutputFormat.YAML:
            content = yaml.safe_dump(
                self.to_dict(), indent=indent, default_flow_style=False
            )
        elif format == OutputFormat.TEXT:
            content = self._to_text()
        else:
            raise ValueError(f"Unknown format: {format}")

        self._write_output(output, content)

    def _to_text(self) -> str:
        """Render one table row per pairing: Iter/Thd, then a rate per level."""
        output = StringIO()
        max_threads = max(
            (len(r["levels"]) for r in self._results), default=0
        )

        header = f"{'':<32}{'Iter/Thd':>10}"
        for threads in range(1, max_threads + 1):
            header += f"{f'{threads} thrd':>12}"
        output.write(header + "\n")
        output.write("-" * len(header) + "\n")

        for result in self._results:
            kind = result["type"].capitalize()
            label = f"{kind}:{result['engine']}:{result['name']}"
            row = f"{label[:31]:<32}{result['iterations']:>10}"
            for level in result["levels"]:
                row += f"{level['rate']:>12.2f}"
            output.write(row + "\n")

        for result in self._results:
            output.write(
                f"\n{result['name']} ({result['engine']}) "
                "- average ms per operation [errors]\n"
            )
            for level in result["levels"]:
                parts = []
                for op, total in level["durations"].items():
                    count = level["counts"].get(op, 0)
                    avg = total / count if count else 0.0
                    parts.append(f"{op}: {avg:.1f} [{level['errors'].get(op, 0)}]")
                for op, count in level["errors"].items():
                    if op not in level["durations"] and count:
                        parts.append(f"{op}: - [{count}]")
                output.write(f"  {level['threads']:>3} thrd  {'  '.join(parts)}\n")

        if self._errors:
            output.write("\nERRORS\n")
            for pairing, error in self._errors.items():
                output.write(f"  {pairing}: {error}\n")

        return output.getvalue()

    def _write_output(self, output: str | Path | TextIO, content: str) -> None:
        if isinstance(output, str | Path):
            Path(output).write_text(content)
        else:
            output.write(content)
            if output is not sys.stdout and output is not sys.stderr:
                output.flush()

    def __len__(self) -> int:
        """Return number of pairings with results."""
        return len(self._results)
