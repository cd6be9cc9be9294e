"""Environment variables read by ctrbench, with typed access.

Usage:
    from ctrbench.utils.env import BUNDLE_DIR_VAR, TRACE_VAR, get_env

    bundle_dir = get_env(BUNDLE_DIR_VAR)
    trace = get_env(TRACE_VAR, default=False, as_type=bool)
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any, TypeVar, cast, overload

T = TypeVar("T")

# Default log level when --log-level is not given
LOG_LEVEL_VAR = "CTRBENCH_LOG_LEVEL"
# Parent directory for runc bundles
BUNDLE_DIR_VAR = "CTRBENCH_BUNDLE_DIR"
# Defaults for run --trace, --limit-threads and --limit-iterations
TRACE_VAR = "CTRBENCH_TRACE"
LIMIT_THREADS_VAR = "CTRBENCH_LIMIT_THREADS"
LIMIT_ITERATIONS_VAR = "CTRBENCH_LIMIT_ITERATIONS"

_FALSE_VALUES = frozenset({"false", "0", "", "no", "off"})


class EnvVarError(Exception):
    """Base exception for environment variable errors."""

    pass


class EnvVarTypeError(EnvVarError):
    """Raised when a variable's value cannot be converted."""

    def __init__(self, name: str, value: str, expected_type: type) -> None:
        self.name = name
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Cannot convert {name}='{value}' to {expected_type.__name__}")


def _to_bool(value: str) -> bool:
    return value.strip().lower() not in _FALSE_VALUES


_CONVERTERS: dict[Any, Callable[[str], Any]] = {
    bool: _to_bool,
}


def _coerce(name: str, value: str, as_type: type) -> Any:
    """Convert value with the converter registered for as_type.

    Raises:
        EnvVarTypeError: If conversion fails.
    """
    key = getattr(as_type, "__origin__", as_type)
    convert = _CONVERTERS.get(key, as_type)
    try:
        return convert(value)
    except (ValueError, TypeError) as e:
        raise EnvVarTypeError(name, value, as_type) from e


@overload
def get_env(name: str, *, default: T, as_type: type[T]) -> T:
    ...


@overload
def get_env(name: str, *, default: T) -> T:
    ...


@overload
def get_env(name: str, *, as_type: type[T]) -> T | None:
    ...


@overload
def get_env(name: str) -> str | None:
    ...


def get_env(
    name: str,
    *,
    default: T | None = None,
    as_type: type[T] | None = None,
) -> T | str | None:
    """Read an environment variable, optionally converting it.

    Unset variables return default unchanged. bool treats "false", "0", "",
    "no" and "off" as False; other types are called on the raw string.

    Raises:
        EnvVarTypeError: If as_type is given and conversion fails.
    """
    value = os.environ.get(name)
    if value is None:
        return default
    if as_type is None:
        return value
    return cast(T, _coerce(name, value, as_type))
