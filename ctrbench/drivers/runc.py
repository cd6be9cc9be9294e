"""runc driver: runs containers from per-container OCI bundles."""

from __future__ import annotations

import copy
import json
import os
import shlex
import shutil
import tempfile
from collections.abc import Collection
from pathlib import Path
from typing import Any

from ctrbench.drivers.base import (
    CleanupError,
    Container,
    Driver,
    DriverInitError,
    OperationError,
)
from ctrbench.models.constants import EngineType
from ctrbench.utils.env import BUNDLE_DIR_VAR, get_env
from ctrbench.utils.exec import (
    BinaryNotFoundError,
    CommandError,
    exec_cmd,
    resolve_binary,
)

DEFAULT_RUNC_BINARY = "runc"

_NOTHING_TO_CLEAN = ("does not exist", "not exist", "container not found")


def default_bundle_dir() -> Path:
    """Return the parent directory for per-container bundles."""
    configured = get_env(BUNDLE_DIR_VAR)
    if configured:
        return Path(configured)
    return Path(tempfile.gettempdir()) / "ctrbench"


class RuncDriver(Driver):
    """Driver for runc.

    runc has no image support: the benchmark image is a root filesystem
    path. Each container gets its own bundle directory holding a
    ``config.json`` derived from ``runc spec``.
    """

    def __init__(
        self,
        binary: str | None = None,
        timeout: float | None = None,
        bundle_dir: str | Path | None = None,
    ):
        """Resolve runc and build the bundle config template.

        Args:
            binary: Optional path to a specific runc binary.
            timeout: Optional per-call timeout in seconds.
            bundle_dir: Parent directory for bundles (defaults to
                CTRBENCH_BUNDLE_DIR or a temp directory).

        Raises:
            DriverInitError: If runc is missing or cannot produce a spec.
        """
        try:
            path = resolve_binary(binary or DEFAULT_RUNC_BINARY)
        except BinaryNotFoundError as e:
            raise DriverInitError(str(e)) from e
        super().__init__(path, timeout)
        self._bundle_dir = Path(bundle_dir) if bundle_dir else default_bundle_dir()
        self.info()
        self._template = self._load_spec_template()

    @property
    def engine_type(self) -> EngineType:
        """Return EngineType.RUNC."""
        return EngineType.RUNC

    def _read_info(self) -> str:
        try:
            output, status = exec_cmd(self._path, ["--version"], timeout=self._timeout)
        except CommandError as e:
            raise DriverInitError(f"Error reading runc version: {e}") from e
        if status != 0:
            raise DriverInitError(f"Error reading runc version: {output.strip()}")
        version = " ".join(line.strip() for line in output.splitlines() if line.strip())
        return f"runc driver (binary: {self._path})\n[{version}]"

    def _load_spec_template(self) -> dict[str, Any]:
        """Generate a default OCI spec with ``runc spec`` and load it."""
        with tempfile.TemporaryDirectory(prefix="ctrbench-spec-") as tmp:
            try:
                output, status = exec_cmd(
                    self._path, ["spec", "--bundle", tmp], timeout=self._timeout
                )
            except CommandError as e:
                raise DriverInitError(f"runc spec failed: {e}") from e
            if status != 0:
                raise DriverInitError(f"runc spec failed: {output.strip()}")
            try:
                with open(os.path.join(tmp, "config.json")) as f:
                    template: dict[str, Any] = json.load(f)
            except (OSError, ValueError) as e:
                raise DriverInitError(f"Reading runc spec failed: {e}") from e
        return template

    def create(
        self,
        name: str,
        image: str,
        command: str | None = None,
        detached: bool = False,
        trace: bool = False,
    ) -> Container:
        """Write the container's bundle and return its handle.

        Raises:
            OperationError: If the bundle cannot be written.
        """
        bundle = self._bundle_dir / name
        spec = copy.deepcopy(self._template)
        spec.setdefault("root", {})["path"] = os.path.abspath(image)
        process = spec.setdefault("process", {})
        process["terminal"] = False
        if command:
            process["args"] = shlex.split(command)
        try:
            bundle.mkdir(parents=True, exist_ok=True)
            (bundle / "config.json").write_text(json.dumps(spec, indent=2))
        except OSError as e:
            raise OperationError("create", name, f"writing bundle failed: {e}") from e
        return Container(
            name=name,
            image=image,
            command=command,
            detached=detached,
            trace=trace,
            bundle=str(bundle),
        )

    def run(self, ctr: Container) -> tuple[str, int]:
        """Run the container with ``runc run``."""
        args = ["run"]
        if ctr.detached:
            args.append("--detach")
        args += ["--bundle", ctr.bundle or str(self._bundle_dir / ctr.name), ctr.name]
        # a detached container inherits our stdio, so do not wait on pipes
        return self._exec("run", ctr, args, capture_output=not ctr.detached)

    def stop(self, ctr: Container) -> tuple[str, int]:
        """Kill the container with ``runc kill <name> KILL``."""
        return self._exec("stop", ctr, ["kill", ctr.name, "KILL"])

    def remove(self, ctr: Container) -> tuple[str, int]:
        """Delete the container and its bundle."""
        try:
            return self._exec("remove", ctr, ["delete", ctr.name])
        finally:
            self._remove_bundle(ctr.name)

    def pause(self, ctr: Container) -> tuple[str, int]:
        """Pause the container with ``runc pause``."""
        return self._exec("pause", ctr, ["pause", ctr.name])

    def unpause(self, ctr: Container) -> tuple[str, int]:
        """Resume the container with ``runc resume``."""
        return self._exec("unpause", ctr, ["resume", ctr.name])

    def clean(self, names: Collection[str] = ()) -> None:
        """Force-delete the named containers and their bundles.

        Raises:
            CleanupError: If runc fails for a reason other than the container
                already being gone.
        """
        failures = []
        for name in sorted(names):
            try:
                output, status = exec_cmd(
                    self._path, ["delete", "--force", name], timeout=self._timeout
                )
            except CommandError as e:
                failures.append(f"{name}: {e}")
                continue
            finally:
                self._remove_bundle(name)
            if status != 0 and not any(m in output for m in _NOTHING_TO_CLEAN):
                failures.append(f"{name}: {output.strip()}")
        if failures:
            raise CleanupError(f"runc: cleanup failed for {'; '.join(failures)}")

    def _remove_bundle(self, name: str) -> None:
        shutil.rmtree(self._bundle_dir / name, ignore_errors=True)
