"""Constants for ctrbench models and commands."""

from enum import StrEnum, auto


class EngineType(StrEnum):
    """Container engines that have a driver implementation."""

    DOCKER = auto()
    RUNC = auto()
    CONTAINERD = auto()
    CTR = auto()
    GARDEN = auto()

    @property
    def needs_rootfs(self) -> bool:
        """Engines driven by a bare binary with no image support."""
        return self in (EngineType.RUNC, EngineType.CTR)

    @property
    def needs_image(self) -> bool:
        """Engines that pull and run images."""
        return self in (EngineType.DOCKER, EngineType.CONTAINERD)

    @classmethod
    def parse(cls, value: "str | EngineType") -> "EngineType":
        """Parse an engine name case-insensitively.

        Raises:
            ValueError: If value does not name a known engine.
        """
        if isinstance(value, EngineType):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(e.value for e in cls)
            raise ValueError(
                f"Unknown engine type '{value}'. Valid: {valid}"
            ) from None


class Operation(StrEnum):
    """Container lifecycle operations a benchmark can sequence."""

    RUN = auto()
    STOP = auto()
    REMOVE = auto()
    PAUSE = auto()
    UNPAUSE = auto()

    @classmethod
    def parse(cls, token: "str | Operation") -> "Operation":
        """Resolve a command token, accepting documented aliases.

        Raises:
            ValueError: If token does not resolve to a known operation.
        """
        if isinstance(token, Operation):
            return token
        key = token.strip().lower()
        if key in OPERATION_ALIASES:
            return OPERATION_ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join(sorted([*(op.value for op in cls), *OPERATION_ALIASES]))
            raise ValueError(
                f"Unknown benchmark command '{token}'. Valid: {valid}"
            ) from None


OPERATION_ALIASES: dict[str, Operation] = {
    "start": Operation.RUN,
    "resume": Operation.UNPAUSE,
    "kill": Operation.STOP,
    "erase": Operation.REMOVE,
    "delete": Operation.REMOVE,
}

# Key under which handle construction failures are counted
CREATE_KEY = "create"

# Prefix for every container a benchmark creates
CONTAINER_PREFIX = "ctrbench"

LIMIT_OPERATIONS: tuple[Operation, ...] = (
    Operation.RUN,
    Operation.STOP,
    Operation.REMOVE,
)
DEFAULT_LIMIT_THREADS = 4
DEFAULT_LIMIT_ITERATIONS = 10

DEFAULT_CONTAINERD_SOCKET = "/run/containerd/containerd.sock"
CONTAINERD_NAMESPACE = "ctrbench"
