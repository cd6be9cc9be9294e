"""Docker engine driver, driven through the docker CLI."""

from __future__ import annotations

import shlex
from collections.abc import Collection

from ctrbench.drivers.base import (
    CleanupError,
    Container,
    Driver,
    DriverInitError,
)
from ctrbench.models.constants import EngineType
from ctrbench.utils.exec import (
    BinaryNotFoundError,
    CommandError,
    exec_cmd,
    resolve_binary,
)

DEFAULT_DOCKER_BINARY = "docker"

# Output fragments docker emits when there is nothing left to remove
_NOTHING_TO_CLEAN = ("No such container", "requires at least 1 argument")


class DockerDriver(Driver):
    """Driver for the Docker engine.

    The daemon must already be running; reachability is checked on
    construction by reading the daemon info.
    """

    def __init__(self, binary: str | None = None, timeout: float | None = None):
        """Resolve the docker client and check the daemon is reachable.

        Args:
            binary: Optional path to a specific docker client binary.
            timeout: Optional per-call timeout in seconds.

        Raises:
            DriverInitError: If the binary is missing or the daemon is down.
        """
        try:
            path = resolve_binary(binary or DEFAULT_DOCKER_BINARY)
        except BinaryNotFoundError as e:
            raise DriverInitError(str(e)) from e
        super().__init__(path, timeout)
        self.info()

    @property
    def engine_type(self) -> EngineType:
        """Return EngineType.DOCKER."""
        return EngineType.DOCKER

    def _read_info(self) -> str:
        try:
            version, _ = exec_cmd(self._path, ["version"], timeout=self._timeout)
            info, status = exec_cmd(self._path, ["info"], timeout=self._timeout)
        except CommandError as e:
            raise DriverInitError(f"Error reading docker daemon info: {e}") from e
        if status != 0:
            raise DriverInitError(
                f"Error reading docker daemon info: {info.strip()}"
            )
        return f"docker driver (binary: {self._path})\n" + parse_daemon_info(
            version, info
        )

    def prepare(self, image: str) -> None:
        """Pull the image unless the daemon already has it.

        Raises:
            DriverInitError: If the image cannot be pulled.
        """
        try:
            _, status = exec_cmd(
                self._path, ["image", "inspect", image], timeout=self._timeout
            )
            if status == 0:
                return
            self.logger.info(f"Pulling image {image}")
            output, status = exec_cmd(
                self._path, ["pull", image], timeout=self._timeout
            )
        except CommandError as e:
            raise DriverInitError(f"Failed to pull image {image}: {e}") from e
        if status != 0:
            raise DriverInitError(f"Failed to pull image {image}: {output.strip()}")

    def run(self, ctr: Container) -> tuple[str, int]:
        """Run the container with ``docker run``."""
        args = ["run"]
        if ctr.detached:
            args.append("-d")
        args += ["--name", ctr.name, ctr.image]
        if ctr.command:
            args += shlex.split(ctr.command)
        return self._exec("run", ctr, args)

    def stop(self, ctr: Container) -> tuple[str, int]:
        """Kill the container with ``docker kill``."""
        return self._exec("stop", ctr, ["kill", ctr.name])

    def remove(self, ctr: Container) -> tuple[str, int]:
        """Remove the container with ``docker rm``."""
        return self._exec("remove", ctr, ["rm", ctr.name])

    def pause(self, ctr: Container) -> tuple[str, int]:
        """Pause the container with ``docker pause``."""
        return self._exec("pause", ctr, ["pause", ctr.name])

    def unpause(self, ctr: Container) -> tuple[str, int]:
        """Unpause the container with ``docker unpause``."""
        return self._exec("unpause", ctr, ["unpause", ctr.name])

    def clean(self, names: Collection[str] = ()) -> None:
        """Force-remove leftover containers with ``docker rm -f``.

        Raises:
            CleanupError: If docker fails for a reason other than the
                containers already being gone.
        """
        if not names:
            return
        self.logger.info(f"Docker: removing {len(names)} leftover container(s)")
        try:
            output, status = exec_cmd(
                self._path, ["rm", "-f", *sorted(names)], timeout=self._timeout
            )
        except CommandError as e:
            raise CleanupError(f"Docker: removing leftover containers: {e}") from e
        if status == 0:
            return
        failures = [
            line
            for line in output.splitlines()
            if line.strip() and not any(m in line for m in _NOTHING_TO_CLEAN)
        ]
        if failures:
            raise CleanupError(
                f"Docker: failed to remove leftover containers: {'; '.join(failures)}"
            )


def parse_daemon_info(version: str, info: str) -> str:
    """Condense ``docker version`` and ``docker info`` output.

    Args:
        version: Output of ``docker version``.
        info: Output of ``docker info``.

    Returns:
        String of the form ``[CLIENT:<ver>|API:<api>][SERVER:<ver>|...]``.
    """
    client_ver = ""
    client_api = ""
    server_ver = ""

    for line in version.splitlines():
        key, _, value = line.partition(":")
        key, value = key.strip(), value.strip()
        if key == "Version":
            # first occurrence is the client, second the server
            if not client_ver:
                client_ver = value
            elif not server_ver:
                server_ver = value
        elif key == "API version":
            if not client_api:
                client_api = value
                client_ver += f"|API:{value}"
            else:
                server_ver += f"|API:{value}"

    labels = {
        "Kernel Version": "Kernel",
        "Storage Driver": "Storage",
        "Backing Filesystem": "BackingFS",
    }
    for line in info.splitlines():
        key, _, value = line.partition(":")
        label = labels.get(key.strip())
        if label:
            server_ver += f"|{label}:{value.strip()}"

    return f"[CLIENT:{client_ver}][SERVER:{server_ver}]"
