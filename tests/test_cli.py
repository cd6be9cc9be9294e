"""Tests for the ctrbench command line."""

import json

import pytest
import yaml
from click.testing import CliRunner
from conftest import StubDriver

from ctrbench.cli import ctrbench
from ctrbench.drivers.base import DriverInitError

DEFINITION = {
    "name": "lifecycle",
    "image": "busybox",
    "drivers": [{"type": "docker", "threads": 2, "iterations": 2}],
    "commands": ["run", "stop", "remove"],
}


@pytest.fixture
def definition_file(tmp_path):
    """Write a benchmark definition and return its path."""
    path = tmp_path / "bench.yaml"
    path.write_text(yaml.safe_dump(DEFINITION))
    return path


@pytest.fixture
def drivers(monkeypatch):
    """Replace engine drivers with stubs; returns the drivers built."""
    built = []

    def fake_new_driver(engine_type, path=None, timeout=None):
        driver = StubDriver()
        built.append(driver)
        return driver

    monkeypatch.setattr("ctrbench.benchmarks.base.new_driver", fake_new_driver)
    return built


def test_run(definition_file, drivers, tmp_path):
    """Test a full session: limit run, custom run, text and JSON output."""
    out = tmp_path / "results.json"
    result = CliRunner().invoke(
        ctrbench,
        [
            "run",
            "-b",
            str(definition_file),
            "--limit-threads",
            "1",
            "--limit-iterations",
            "2",
            "-o",
            str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Limit:docker:Limit" in result.output
    assert "Custom:docker:lifecycle" in result.output

    data = json.loads(out.read_text())
    assert [r["type"] for r in data["results"]] == ["limit", "custom"]
    assert len(data["results"][1]["levels"]) == 2
    assert all(d.closed for d in drivers)


def test_run_skip_limit(definition_file, drivers):
    """Test --skip-limit runs only the declared benchmark."""
    result = CliRunner().invoke(
        ctrbench, ["run", "-b", str(definition_file), "-s", "--skip-validate"]
    )

    assert result.exit_code == 0, result.output
    assert "Limit:" not in result.output
    assert len(drivers) == 1
    # no validation container
    assert not any("-validate-" in name for name in drivers[0].created)


def test_run_driver_init_failure(definition_file, monkeypatch):
    """Test an unreachable engine is reported and the exit status is non-zero."""

    def unreachable(engine_type, path=None, timeout=None):
        raise DriverInitError("Binary not found or not executable: docker")

    monkeypatch.setattr("ctrbench.benchmarks.base.new_driver", unreachable)
    result = CliRunner().invoke(ctrbench, ["run", "-b", str(definition_file)])

    assert result.exit_code == 1
    assert "ERRORS" in result.output
    assert "docker: lifecycle: Binary not found" in result.output


def test_run_validation_failure(definition_file, monkeypatch):
    """Test a failed pre-flight pass skips the pairing and fails the session."""
    monkeypatch.setattr(
        "ctrbench.benchmarks.base.new_driver",
        lambda engine_type, path=None, timeout=None: StubDriver(
            fail=lambda op, name: op == "stop"
        ),
    )
    result = CliRunner().invoke(ctrbench, ["run", "-b", str(definition_file), "-s"])

    assert result.exit_code == 1
    assert "Validation of benchmark 'lifecycle' failed" in result.output


def test_run_invalid_definition(tmp_path, drivers):
    """Test an invalid definition fails before any engine is contacted."""
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({**DEFINITION, "commands": ["run", "restart"]}))

    result = CliRunner().invoke(ctrbench, ["run", "-b", str(path)])

    assert result.exit_code == 1
    assert "Invalid benchmark definition" in result.output
    assert drivers == []


def test_validate(definition_file):
    """Test the validate command prints the resolved plan."""
    result = CliRunner().invoke(ctrbench, ["validate", "-b", str(definition_file)])

    assert result.exit_code == 0, result.output
    assert "Benchmark: lifecycle" in result.output
    assert "Sequence: run, stop, remove" in result.output
    assert "docker: 2 thread(s) x 2 iteration(s)" in result.output


def test_validate_json_definition(tmp_path):
    """Test definitions can be written in JSON."""
    path = tmp_path / "bench.json"
    path.write_text(json.dumps(DEFINITION))

    result = CliRunner().invoke(ctrbench, ["validate", "-b", str(path)])
    assert result.exit_code == 0, result.output


def test_version():
    """Test the version command."""
    result = CliRunner().invoke(ctrbench, ["version"])
    assert result.exit_code == 0
    assert result.output.startswith("ctrbench ")


def test_log_level_option(definition_file, log_output):
    """Test --log-level adjusts verbosity."""
    result = CliRunner().invoke(
        ctrbench, ["--log-level", "error", "validate", "-b", str(definition_file)]
    )
    assert result.exit_code == 0
    assert log_output.getvalue() == ""


def test_run_unparsable_command_override(tmp_path, drivers):
    """Test a command override with unbalanced quotes is rejected at load."""
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({**DEFINITION, "command": 'sh -c "echo hi'}))

    result = CliRunner().invoke(ctrbench, ["run", "-b", str(path)])

    assert result.exit_code == 1
    assert "Invalid benchmark definition" in result.output
    assert drivers == []


def test_run_defaults_from_env(definition_file, monkeypatch):
    """Test --trace and the limit options default to environment variables."""
    seen = {}

    def fake_run_benchmarks(path, **kwargs):
        seen.update(kwargs)

    monkeypatch.setattr(
        "ctrbench.commands.run_cmd.run_benchmarks", fake_run_benchmarks
    )
    monkeypatch.setenv("CTRBENCH_TRACE", "yes")
    monkeypatch.setenv("CTRBENCH_LIMIT_THREADS", "1")
    monkeypatch.setenv("CTRBENCH_LIMIT_ITERATIONS", "3")

    result = CliRunner().invoke(ctrbench, ["run", "-b", str(definition_file)])

    assert result.exit_code == 0, result.output
    assert seen["trace"] is True
    assert seen["limit_threads"] == 1
    assert seen["limit_iterations"] == 3

    # explicit options win
    result = CliRunner().invoke(
        ctrbench, ["run", "-b", str(definition_file), "--limit-threads", "2"]
    )
    assert result.exit_code == 0, result.output
    assert seen["limit_threads"] == 2


def test_run_trace_env_off(definition_file, monkeypatch):
    """Test CTRBENCH_TRACE=off leaves tracing disabled."""
    seen = {}
    monkeypatch.setattr(
        "ctrbench.commands.run_cmd.run_benchmarks",
        lambda path, **kwargs: seen.update(kwargs),
    )
    monkeypatch.setenv("CTRBENCH_TRACE", "off")

    result = CliRunner().invoke(ctrbench, ["run", "-b", str(definition_file)])

    assert result.exit_code == 0, result.output
    assert seen["trace"] is False


def test_run_bad_env_default(definition_file, monkeypatch):
    """Test a non-numeric CTRBENCH_LIMIT_THREADS is a usage error."""
    monkeypatch.setenv("CTRBENCH_LIMIT_THREADS", "many")

    result = CliRunner().invoke(ctrbench, ["run", "-b", str(definition_file)])

    assert result.exit_code == 2
    assert "Cannot convert CTRBENCH_LIMIT_THREADS='many' to int" in result.output
