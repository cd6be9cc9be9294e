"""containerd ``ctr`` driver: runs containers from a root filesystem."""

from __future__ import annotations

import shlex
from collections.abc import Collection

from ctrbench.drivers.base import CleanupError, Container, Driver, DriverInitError
from ctrbench.models.constants import EngineType
from ctrbench.utils.exec import (
    BinaryNotFoundError,
    CommandError,
    exec_cmd,
    resolve_binary,
)

DEFAULT_CTR_BINARY = "ctr"

_NOTHING_TO_CLEAN = ("not found", "no such")


class CtrDriver(Driver):
    """Driver for the containerd ``ctr`` client in rootfs mode.

    Containers are started with ``ctr run --rootfs``; the benchmark image is
    a root filesystem path.
    """

    def __init__(self, binary: str | None = None, timeout: float | None = None):
        try:
            path = resolve_binary(binary or DEFAULT_CTR_BINARY)
        except BinaryNotFoundError as e:
            raise DriverInitError(str(e)) from e
        super().__init__(path, timeout)
        self.info()

    @property
    def engine_type(self) -> EngineType:
        """Return EngineType.CTR."""
        return EngineType.CTR

    def _global_args(self) -> list[str]:
        """Arguments placed before every ctr subcommand."""
        return []

    def _ctr(self, *args: str) -> list[str]:
        return [*self._global_args(), *args]

    def _read_info(self) -> str:
        try:
            output, status = exec_cmd(
                self._binary, self._ctr("version"), timeout=self._timeout
            )
        except CommandError as e:
            raise DriverInitError(f"Error reading containerd version: {e}") from e
        if status != 0:
            raise DriverInitError(
                f"Error reading containerd version: {output.strip()}"
            )
        return f"{self.engine_type} driver (binary: {self._path})\n" + (
            parse_ctr_version(output)
        )

    def _run_args(self, ctr: Container) -> list[str]:
        args = ["run", "--rootfs"]
        if ctr.detached:
            args.append("-d")
        args += [ctr.image, ctr.name]
        if ctr.command:
            args += shlex.split(ctr.command)
        return self._ctr(*args)

    def run(self, ctr: Container) -> tuple[str, int]:
        """Run the container with ``ctr run``."""
        return self._exec("run", ctr, self._run_args(ctr))

    def stop(self, ctr: Container) -> tuple[str, int]:
        """Kill the container's task with SIGKILL."""
        return self._exec(
            "stop", ctr, self._ctr("task", "kill", "-s", "SIGKILL", ctr.name)
        )

    def remove(self, ctr: Container) -> tuple[str, int]:
        """Delete the container's task, then the container."""
        task_out, task_ms = self._exec(
            "remove", ctr, self._ctr("task", "delete", ctr.name)
        )
        out, ms = self._exec("remove", ctr, self._ctr("container", "delete", ctr.name))
        return task_out + out, task_ms + ms

    def pause(self, ctr: Container) -> tuple[str, int]:
        """Pause the container's task."""
        return self._exec("pause", ctr, self._ctr("task", "pause", ctr.name))

    def unpause(self, ctr: Container) -> tuple[str, int]:
        """Resume the container's task."""
        return self._exec("unpause", ctr, self._ctr("task", "resume", ctr.name))

    def clean(self, names: Collection[str] = ()) -> None:
        """Force-delete tasks and containers for the named containers.

        Raises:
            CleanupError: If ctr fails for a reason other than the object
                already being gone.
        """
        failures = []
        for name in sorted(names):
            for args in (
                self._ctr("task", "delete", "--force", name),
                self._ctr("container", "delete", name),
            ):
                try:
                    output, status = exec_cmd(
                        self._binary, args, timeout=self._timeout
                    )
                except CommandError as e:
                    failures.append(f"{name}: {e}")
                    continue
                if status != 0 and not any(
                    m in output.lower() for m in _NOTHING_TO_CLEAN
                ):
                    failures.append(f"{name}: {output.strip()}")
        if failures:
            raise CleanupError(
                f"{self.engine_type}: cleanup failed for {'; '.join(failures)}"
            )


def parse_ctr_version(output: str) -> str:
    """Condense ``ctr version`` output into ``[CLIENT:<v>][SERVER:<v>]``."""
    client_ver = ""
    server_ver = ""
    section = ""
    for line in output.splitlines():
        stripped = line.strip()
        if stripped.rstrip(":") in ("Client", "Server"):
            section = stripped.rstrip(":")
            continue
        key, _, value = stripped.partition(":")
        if key.strip() != "Version":
            continue
        if section == "Client" and not client_ver:
            client_ver = value.strip()
        elif section == "Server" and not server_ver:
            server_ver = value.strip()
    return f"[CLIENT:{client_ver}][SERVER:{server_ver}]"
