"""containerd daemon driver: image-based containers over the daemon socket."""

from __future__ import annotations

import os
import shlex
import stat
import threading

from ctrbench.drivers.base import Container, DriverInitError
from ctrbench.drivers.ctr import DEFAULT_CTR_BINARY, CtrDriver
from ctrbench.models.constants import (
    CONTAINERD_NAMESPACE,
    DEFAULT_CONTAINERD_SOCKET,
    EngineType,
)
from ctrbench.utils.exec import (
    BinaryNotFoundError,
    CommandError,
    exec_cmd,
    resolve_binary,
)


class ContainerdDriver(CtrDriver):
    """Driver for a running containerd daemon.

    Talks to the daemon at its socket through the ``ctr`` client in a
    dedicated namespace. Unlike CtrDriver, containers are created from
    images, which are pulled by prepare().
    """

    def __init__(
        self,
        socket: str | None = None,
        timeout: float | None = None,
        ctr_binary: str = DEFAULT_CTR_BINARY,
    ):
        """Check the daemon socket and check the daemon is reachable.

        Args:
            socket: Path to the containerd socket.
            timeout: Optional per-call timeout in seconds.
            ctr_binary: ctr client used to reach the daemon.

        Raises:
            DriverInitError: If the socket is missing or the daemon is down.
        """
        socket = socket or DEFAULT_CONTAINERD_SOCKET
        try:
            mode = os.stat(socket).st_mode
        except OSError as e:
            raise DriverInitError(f"containerd socket unreachable: {e}") from e
        if not stat.S_ISSOCK(mode):
            raise DriverInitError(
                f"containerd socket unreachable: {socket} is not a socket"
            )
        try:
            binary = resolve_binary(ctr_binary)
        except BinaryNotFoundError as e:
            raise DriverInitError(str(e)) from e

        # Skip CtrDriver.__init__: path is the socket, not the client
        super(CtrDriver, self).__init__(socket, timeout, binary=binary)
        self._pulled: set[str] = set()
        self._pull_lock = threading.Lock()
        self.info()

    @property
    def engine_type(self) -> EngineType:
        """Return EngineType.CONTAINERD."""
        return EngineType.CONTAINERD

    def _global_args(self) -> list[str]:
        return ["--address", self._path, "--namespace", CONTAINERD_NAMESPACE]

    def prepare(self, image: str) -> None:
        """Pull the image into the benchmark namespace once per driver.

        Raises:
            DriverInitError: If the pull fails.
        """
        with self._pull_lock:
            if image in self._pulled:
                return
            self.logger.info(f"Pulling image {image}")
            try:
                output, status = exec_cmd(
                    self._binary,
                    self._ctr("images", "pull", image),
                    timeout=self._timeout,
                )
            except CommandError as e:
                raise DriverInitError(f"Failed to pull image {image}: {e}") from e
            if status != 0:
                raise DriverInitError(
                    f"Failed to pull image {image}: {output.strip()}"
                )
            self._pulled.add(image)

    def _run_args(self, ctr: Container) -> list[str]:
        args = ["run"]
        if ctr.detached:
            args.append("-d")
        args += [ctr.image, ctr.name]
        if ctr.command:
            args += shlex.split(ctr.command)
        return self._ctr(*args)
