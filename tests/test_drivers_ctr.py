"""Tests for the ctr, containerd and Garden drivers and the driver factory."""

import socket

import pytest

from ctrbench.drivers.base import CleanupError, DriverInitError, OperationError
from ctrbench.drivers.containerd import ContainerdDriver
from ctrbench.drivers.ctr import CtrDriver, parse_ctr_version
from ctrbench.drivers.factory import new_driver
from ctrbench.drivers.garden import GardenDriver
from ctrbench.models.constants import EngineType
from ctrbench.utils.exec import CommandError

CTR_VERSION = """\
Client:
  Version:  v1.7.13
  Revision: 7c3aca7a610df76212171d200ca3811ff6096eb8
  Go version: go1.21.6

Server:
  Version:  v1.7.13
  Revision: 7c3aca7a610df76212171d200ca3811ff6096eb8
  UUID: 0b4e3b8c-0d4f-4b9e-8d0b-1f2d3e4c5b6a
"""


@pytest.fixture
def ctr_env(monkeypatch):
    """Patch ctr/gaol lookup and calls."""
    calls = {"exec": [], "timed": []}
    responses = {}

    def fake_exec_cmd(binary, args, timeout=None):
        calls["exec"].append(args)
        if "version" in args:
            return CTR_VERSION, 0
        key = " ".join(args)
        return responses.get(key, ("", 0))

    def fake_exec_timed_cmd(binary, args, timeout=None, capture_output=True):
        calls["timed"].append(args)
        if " ".join(args) in responses:
            output, status = responses[" ".join(args)]
            raise CommandError([binary, *args], status, output, 2)
        return f"{args[0]}\n", 5

    for module in ("ctr", "containerd", "garden"):
        monkeypatch.setattr(
            f"ctrbench.drivers.{module}.resolve_binary", lambda b: f"/usr/bin/{b}"
        )
        monkeypatch.setattr(f"ctrbench.drivers.{module}.exec_cmd", fake_exec_cmd)
    monkeypatch.setattr("ctrbench.drivers.base.exec_timed_cmd", fake_exec_timed_cmd)
    return calls, responses


@pytest.fixture
def containerd_socket(tmp_path):
    """A bound unix socket standing in for the daemon endpoint."""
    path = tmp_path / "containerd.sock"
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.bind(str(path))
    yield str(path)
    sock.close()


def test_parse_ctr_version():
    """Test client and server versions are picked from their sections."""
    assert parse_ctr_version(CTR_VERSION) == "[CLIENT:v1.7.13][SERVER:v1.7.13]"


def test_ctr_lifecycle(ctr_env):
    """Test the ctr arguments of each lifecycle operation."""
    calls, _ = ctr_env
    driver = CtrDriver()
    ctr = driver.create("ctrbench-1", "/rootfs", command="sleep 1", detached=True)

    driver.run(ctr)
    driver.pause(ctr)
    driver.unpause(ctr)
    driver.stop(ctr)
    output, elapsed = driver.remove(ctr)

    assert calls["timed"] == [
        ["run", "--rootfs", "-d", "/rootfs", "ctrbench-1", "sleep", "1"],
        ["task", "pause", "ctrbench-1"],
        ["task", "resume", "ctrbench-1"],
        ["task", "kill", "-s", "SIGKILL", "ctrbench-1"],
        ["task", "delete", "ctrbench-1"],
        ["container", "delete", "ctrbench-1"],
    ]
    assert elapsed == 10
    assert output == "task\ncontainer\n"
    assert driver.info().startswith("ctr driver (binary: /usr/bin/ctr)")


def test_ctr_clean_tolerates_missing(ctr_env):
    """Test clean ignores objects that are already gone."""
    _, responses = ctr_env
    driver = CtrDriver()

    responses["task delete --force ctrbench-1"] = ("ctr: task ctrbench-1: not found", 1)
    driver.clean(["ctrbench-1"])

    responses["container delete ctrbench-2"] = ("ctr: permission denied", 1)
    with pytest.raises(CleanupError, match="permission denied"):
        driver.clean(["ctrbench-2"])


def test_containerd_requires_socket(ctr_env, tmp_path):
    """Test a missing or non-socket path fails construction."""
    with pytest.raises(DriverInitError, match="unreachable"):
        ContainerdDriver(str(tmp_path / "missing.sock"))

    regular = tmp_path / "file"
    regular.write_text("")
    with pytest.raises(DriverInitError, match="not a socket"):
        ContainerdDriver(str(regular))


def test_containerd_lifecycle(ctr_env, containerd_socket):
    """Test containerd calls go through the socket in the benchmark namespace."""
    calls, _ = ctr_env
    driver = ContainerdDriver(containerd_socket)
    ctr = driver.create("ctrbench-1", "docker.io/library/busybox:latest")

    driver.run(ctr)
    driver.stop(ctr)

    prefix = ["--address", containerd_socket, "--namespace", "ctrbench"]
    assert calls["timed"] == [
        [*prefix, "run", "docker.io/library/busybox:latest", "ctrbench-1"],
        [*prefix, "task", "kill", "-s", "SIGKILL", "ctrbench-1"],
    ]
    assert driver.path == containerd_socket
    assert driver.engine_type == EngineType.CONTAINERD


def test_containerd_prepare_pulls_once(ctr_env, containerd_socket):
    """Test the image is pulled once per driver."""
    calls, responses = ctr_env
    driver = ContainerdDriver(containerd_socket)

    driver.prepare("busybox")
    driver.prepare("busybox")
    pulls = [a for a in calls["exec"] if "pull" in a]
    assert len(pulls) == 1

    prefix = f"--address {containerd_socket} --namespace ctrbench"
    responses[f"{prefix} images pull alpine"] = ("not found", 1)
    with pytest.raises(DriverInitError, match="alpine"):
        driver.prepare("alpine")


def test_garden_run_and_noops(ctr_env):
    """Test Garden runs create + run and treats other operations as no-ops."""
    calls, _ = ctr_env
    driver = GardenDriver()
    ctr = driver.create("ctrbench-1", "")

    output, elapsed = driver.run(ctr)
    assert calls["timed"] == [
        ["create", "-n", "ctrbench-1"],
        ["run", "ctrbench-1", "-a", "-c", "whoami"],
    ]
    assert elapsed == 10
    assert output == "create\nrun\n"

    assert driver.stop(ctr) == ("", 0)
    assert driver.pause(ctr) == ("", 0)
    assert driver.unpause(ctr) == ("", 0)
    driver.remove(ctr)
    assert calls["timed"][-1] == ["destroy", "ctrbench-1"]
    assert driver.info() == "Info for Garden isn't implemented yet"


def test_garden_run_failure(ctr_env):
    """Test a failed garden create surfaces as a run failure."""
    _, responses = ctr_env
    responses["create -n ctrbench-1"] = ("already exists", 1)
    driver = GardenDriver()

    with pytest.raises(OperationError) as excinfo:
        driver.run(driver.create("ctrbench-1", ""))
    assert excinfo.value.operation == "run"


def test_garden_run_failure_keeps_create(ctr_env):
    """Test a failed gaol run reports the create's output and time too."""
    _, responses = ctr_env
    responses["run ctrbench-1 -a -c whoami"] = ("process failed", 1)
    driver = GardenDriver()

    with pytest.raises(OperationError) as excinfo:
        driver.run(driver.create("ctrbench-1", ""))
    assert excinfo.value.operation == "run"
    assert excinfo.value.elapsed_ms == 5 + 2
    assert excinfo.value.output == "create\nprocess failed"
    assert str(excinfo.value).count("run ctrbench-1:") == 1


def test_garden_clean_collects_failures(ctr_env):
    """Test clean tries every container and reports all failures at once."""
    calls, responses = ctr_env
    responses["destroy ctrbench-a"] = ("permission denied", 1)
    responses["destroy ctrbench-b"] = ("unknown handle: ctrbench-b", 1)
    responses["destroy ctrbench-c"] = ("backend down", 1)
    driver = GardenDriver()

    with pytest.raises(CleanupError) as excinfo:
        driver.clean(["ctrbench-c", "ctrbench-b", "ctrbench-a"])
    assert [a for a in calls["exec"] if a[0] == "destroy"] == [
        ["destroy", "ctrbench-a"],
        ["destroy", "ctrbench-b"],
        ["destroy", "ctrbench-c"],
    ]
    assert "ctrbench-a: permission denied" in str(excinfo.value)
    assert "ctrbench-c: backend down" in str(excinfo.value)
    assert "ctrbench-b" not in str(excinfo.value)


def test_factory(ctr_env):
    """Test the factory builds the driver matching the engine name."""
    assert isinstance(new_driver("ctr"), CtrDriver)
    assert isinstance(new_driver(EngineType.GARDEN), GardenDriver)
    with pytest.raises(ValueError):
        new_driver("lxc")
