"""Process-wide logging for ctrbench.

All ctrbench loggers hang off the ``ctrbench`` root and share one handler,
configured once by the CLI. Benchmark workers log from pool threads, so the
default format can carry the thread name to tell concurrent workers apart.

Usage:
    from ctrbench.utils.logger import Logger

    Logger.configure(level="INFO", include_thread=True)

    log = Logger.get("benchmark.CustomBench")
    log.info("Level 2: starting 2 worker(s)")
"""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import TextIO

ROOT_LOGGER = "ctrbench"


class LogLevel(Enum):
    """Accepted log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def parse(cls, level: "str | LogLevel") -> "LogLevel":
        """Parse a level name case-insensitively.

        Raises:
            ValueError: If the name is not a known level.
        """
        if isinstance(level, LogLevel):
            return level
        return cls(level.strip().upper())

    def to_logging_level(self) -> int:
        """Return the matching stdlib logging constant."""
        value: int = logging.getLevelName(self.value)
        return value


class LoggerNotConfiguredError(Exception):
    """Raised when a logger is requested before Logger.configure()."""

    def __init__(self) -> None:
        super().__init__(
            "Logger not configured. Call Logger.configure() at application startup."
        )


def _build_handler(output: str | Path | TextIO | None) -> logging.Handler:
    if output is None:
        # stdout carries the results table
        return logging.StreamHandler(sys.stderr)
    if output == "stdout":
        return logging.StreamHandler(sys.stdout)
    if isinstance(output, str | Path):
        return logging.FileHandler(str(output))
    if hasattr(output, "write"):
        return logging.StreamHandler(output)
    raise ValueError(f"Invalid log output: {type(output)}")


def _build_format(timestamps: bool, include_thread: bool) -> str:
    parts = ["%(asctime)s"] if timestamps else []
    parts += ["%(levelname)s", "[%(name)s]"]
    if include_thread:
        parts.append("(%(threadName)s)")
    parts.append("%(message)s")
    return " ".join(parts)


class Logger:
    """Configure-once facade over the ``ctrbench`` logger tree.

    Example:
        >>> Logger.configure(level="DEBUG", output="ctrbench.log")
        >>> Logger.get("driver.docker").debug("docker kill ctrbench-...")
    """

    _configured: bool = False

    @classmethod
    def configure(
        cls,
        level: str | LogLevel = "INFO",
        output: str | Path | TextIO | None = None,
        timestamps: bool = True,
        include_thread: bool = False,
        format_string: str | None = None,
    ) -> None:
        """Install the single handler on the ``ctrbench`` root logger.

        Calling it again replaces the previous handler.

        Args:
            level: Level name or LogLevel.
            output: None for stderr, "stdout", a file path, or a stream.
            timestamps: Prefix records with their time.
            include_thread: Add the emitting thread's name.
            format_string: Explicit logging format, overriding the flags.

        Raises:
            ValueError: If level or output is invalid.
        """
        log_level = LogLevel.parse(level).to_logging_level()
        handler = _build_handler(output)
        handler.setLevel(log_level)
        handler.setFormatter(
            logging.Formatter(
                format_string or _build_format(timestamps, include_thread)
            )
        )

        root = logging.getLogger(ROOT_LOGGER)
        for existing in root.handlers[:]:
            root.removeHandler(existing)
            existing.close()
        root.setLevel(log_level)
        root.addHandler(handler)
        root.propagate = False

        cls._configured = True

    @classmethod
    def get(cls, name: str | None = None) -> logging.Logger:
        """Return ``ctrbench.<name>``, or the root logger when name is None.

        Raises:
            LoggerNotConfiguredError: If configure() hasn't been called.
        """
        if not cls._configured:
            raise LoggerNotConfiguredError()
        return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)

    @classmethod
    def set_level(cls, level: str | LogLevel) -> None:
        """Change the level of the root logger and its handler.

        Raises:
            LoggerNotConfiguredError: If configure() hasn't been called.
        """
        if not cls._configured:
            raise LoggerNotConfiguredError()
        log_level = LogLevel.parse(level).to_logging_level()
        root = logging.getLogger(ROOT_LOGGER)
        root.setLevel(log_level)
        for handler in root.handlers:
            handler.setLevel(log_level)

    @classmethod
    def is_configured(cls) -> bool:
        """Return True once configure() has run."""
        return cls._configured
