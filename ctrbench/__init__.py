"""ctrbench - container runtime lifecycle benchmarks."""

from ctrbench.version.ctrbench_version import CTRBENCH_VERSION, Version

__version__ = str(CTRBENCH_VERSION)
__version_info__ = CTRBENCH_VERSION

__all__ = [
    "CTRBENCH_VERSION",
    "Version",
    "__version__",
    "__version_info__",
]
