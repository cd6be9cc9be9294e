"""Binary resolution and process execution helpers used by engine drivers.

Every driver talks to its engine by running a client binary. These helpers
run a command, capture its combined output, and report the wall time of the
call in milliseconds.

Usage:
    from ctrbench.utils.exec import resolve_binary, exec_timed_cmd

    docker = resolve_binary("docker")
    output, elapsed_ms = exec_timed_cmd(docker, ["pause", "ctrbench-1"])
"""

from __future__ import annotations

import os
import shutil
import subprocess
import time


class BinaryNotFoundError(Exception):
    """Raised when an engine client binary cannot be located."""

    def __init__(self, binary: str) -> None:
        self.binary = binary
        super().__init__(f"Binary not found or not executable: {binary}")


class CommandError(Exception):
    """Raised when a command exits with a non-zero status."""

    def __init__(
        self, args: list[str], returncode: int, output: str, elapsed_ms: int = 0
    ) -> None:
        self.args_list = args
        self.returncode = returncode
        self.output = output
        self.elapsed_ms = elapsed_ms
        super().__init__(
            f"Command '{' '.join(args)}' failed with exit status {returncode}: "
            f"{output.strip()}"
        )


class CommandTimeoutError(CommandError):
    """Raised when a command does not finish within its timeout."""

    def __init__(self, args: list[str], timeout: float, output: str = "") -> None:
        super().__init__(args, -1, output, int(timeout * 1000))
        self.timeout = timeout


def resolve_binary(binary: str) -> str:
    """Resolve a binary name or path to an absolute executable path.

    Args:
        binary: Executable name (looked up in PATH) or a path to it.

    Returns:
        Absolute path of the executable.

    Raises:
        BinaryNotFoundError: If the binary does not exist or is not executable.
    """
    if os.sep in binary:
        if os.path.isfile(binary) and os.access(binary, os.X_OK):
            return os.path.abspath(binary)
        raise BinaryNotFoundError(binary)

    resolved = shutil.which(binary)
    if resolved is None:
        raise BinaryNotFoundError(binary)
    return resolved


def _decode(stdout: bytes | str | None) -> str:
    if stdout is None:
        return ""
    if isinstance(stdout, bytes):
        return stdout.decode(errors="replace")
    return stdout


def exec_cmd(
    binary: str,
    args: list[str],
    timeout: float | None = None,
) -> tuple[str, int]:
    """Run a command and return its combined output and exit status.

    Does not raise on a non-zero exit status; callers decide what a failure
    means for them.

    Args:
        binary: Resolved path of the executable.
        args: Arguments passed to the executable.
        timeout: Maximum time to wait in seconds (None waits forever).

    Returns:
        Tuple of (combined stdout/stderr, exit status).

    Raises:
        CommandError: If the executable cannot be started.
        CommandTimeoutError: If the command exceeds timeout.
    """
    cmd = [binary, *args]
    try:
        result = subprocess.run(
            cmd,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandTimeoutError(cmd, e.timeout, _decode(e.output)) from e
    except OSError as e:
        raise CommandError(cmd, -1, str(e)) from e
    return result.stdout or "", result.returncode


def exec_timed_cmd(
    binary: str,
    args: list[str],
    timeout: float | None = None,
    capture_output: bool = True,
) -> tuple[str, int]:
    """Run a command, timing it and raising on a non-zero exit status.

    Args:
        binary: Resolved path of the executable.
        args: Arguments passed to the executable.
        timeout: Maximum time to wait in seconds (None waits forever).
        capture_output: When False, stdio is detached from the caller. Needed
            for commands that leave a long-lived child holding their stdio.

    Returns:
        Tuple of (combined output, elapsed wall time in milliseconds).

    Raises:
        CommandError: If the command exits non-zero or cannot be started.
        CommandTimeoutError: If the command exceeds timeout.
    """
    cmd = [binary, *args]
    stdout = subprocess.PIPE if capture_output else subprocess.DEVNULL
    stderr = subprocess.STDOUT if capture_output else subprocess.DEVNULL

    start = time.perf_counter()
    try:
        result = subprocess.run(
            cmd,
            check=False,
            stdin=subprocess.DEVNULL,
            stdout=stdout,
            stderr=stderr,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandTimeoutError(cmd, e.timeout, _decode(e.output)) from e
    except OSError as e:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        raise CommandError(cmd, -1, str(e), elapsed_ms) from e
    elapsed_ms = int((time.perf_counter() - start) * 1000)

    output = result.stdout or ""
    if result.returncode != 0:
        raise CommandError(cmd, result.returncode, output, elapsed_ms)
    return output, elapsed_ms

