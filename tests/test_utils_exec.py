"""Tests for binary resolution and timed command execution."""

import os
import sys

import pytest

from ctrbench.utils.exec import (
    BinaryNotFoundError,
    CommandError,
    CommandTimeoutError,
    exec_cmd,
    exec_timed_cmd,
    resolve_binary,
)


def test_resolve_binary_from_path():
    """Test names are looked up in PATH."""
    assert os.path.isabs(resolve_binary("sh"))


def test_resolve_binary_explicit_path(tmp_path):
    """Test explicit paths must exist and be executable."""
    assert resolve_binary(sys.executable) == os.path.abspath(sys.executable)

    script = tmp_path / "engine"
    script.write_text("#!/bin/sh\n")
    with pytest.raises(BinaryNotFoundError):
        resolve_binary(str(script))

    script.chmod(0o755)
    assert resolve_binary(str(script)) == str(script)


def test_resolve_binary_missing():
    """Test unknown binaries raise BinaryNotFoundError."""
    with pytest.raises(BinaryNotFoundError, match="no-such-engine-binary"):
        resolve_binary("no-such-engine-binary")


def test_exec_timed_cmd_success():
    """Test output is captured and elapsed time reported."""
    output, elapsed = exec_timed_cmd(sys.executable, ["-c", "print('hello')"])
    assert output.strip() == "hello"
    assert elapsed >= 0


def test_exec_timed_cmd_merges_stderr():
    """Test stderr is part of the returned output."""
    output, _ = exec_timed_cmd(
        sys.executable, ["-c", "import sys; sys.stderr.write('warn')"]
    )
    assert "warn" in output


def test_exec_timed_cmd_failure():
    """Test a non-zero exit raises CommandError carrying output and time."""
    with pytest.raises(CommandError) as excinfo:
        exec_timed_cmd(
            sys.executable, ["-c", "import sys; print('bad'); sys.exit(3)"]
        )
    assert excinfo.value.returncode == 3
    assert "bad" in excinfo.value.output
    assert excinfo.value.elapsed_ms >= 0


def test_exec_timed_cmd_timeout():
    """Test a call exceeding its timeout raises CommandTimeoutError."""
    with pytest.raises(CommandTimeoutError) as excinfo:
        exec_timed_cmd(
            sys.executable, ["-c", "import time; time.sleep(5)"], timeout=0.2
        )
    assert excinfo.value.timeout == 0.2
    assert isinstance(excinfo.value, CommandError)


def test_exec_timed_cmd_unstartable(tmp_path):
    """Test a binary that cannot be started raises CommandError."""
    with pytest.raises(CommandError):
        exec_timed_cmd(str(tmp_path / "missing"), [])


def test_exec_timed_cmd_without_capture():
    """Test output is discarded when capture is off."""
    output, _ = exec_timed_cmd(
        sys.executable, ["-c", "print('dropped')"], capture_output=False
    )
    assert output == ""


def test_exec_cmd_returns_status():
    """Test exec_cmd reports non-zero status instead of raising."""
    output, status = exec_cmd(sys.executable, ["-c", "import sys; sys.exit(2)"])
    assert status == 2
    assert output == ""


def test_exec_cmd_unstartable(tmp_path):
    """Test exec_cmd raises CommandError when the binary cannot be started."""
    with pytest.raises(CommandError) as excinfo:
        exec_cmd(str(tmp_path / "missing"), ["rm", "-f", "ctrbench-1"])
    assert excinfo.value.returncode == -1


def test_exec_cmd_os_error(monkeypatch):
    """Test OS-level launch failures such as E2BIG surface as CommandError."""

    def too_long(*args, **kwargs):
        raise OSError(7, "Argument list too long")

    monkeypatch.setattr("ctrbench.utils.exec.subprocess.run", too_long)
    with pytest.raises(CommandError, match="Argument list too long"):
        exec_cmd("/usr/bin/docker", ["rm", "-f", "ctrbench-1"])
