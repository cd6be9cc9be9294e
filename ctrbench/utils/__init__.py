"""ctrbench utilities - process execution, logging and environment helpers."""

from ctrbench.utils.env import (
    BUNDLE_DIR_VAR,
    LIMIT_ITERATIONS_VAR,
    LIMIT_THREADS_VAR,
    LOG_LEVEL_VAR,
    TRACE_VAR,
    EnvVarError,
    EnvVarTypeError,
    get_env,
)
from ctrbench.utils.exec import (
    BinaryNotFoundError,
    CommandError,
    CommandTimeoutError,
    exec_cmd,
    exec_timed_cmd,
    resolve_binary,
)
from ctrbench.utils.logger import (
    Logger,
    LoggerNotConfiguredError,
    LogLevel,
)

__all__ = [
    "BUNDLE_DIR_VAR",
    "LIMIT_ITERATIONS_VAR",
    "LIMIT_THREADS_VAR",
    "LOG_LEVEL_VAR",
    "TRACE_VAR",
    "BinaryNotFoundError",
    "CommandError",
    "CommandTimeoutError",
    "EnvVarError",
    "EnvVarTypeError",
    "LogLevel",
    "Logger",
    "LoggerNotConfiguredError",
    "exec_cmd",
    "exec_timed_cmd",
    "get_env",
    "resolve_binary",
]

