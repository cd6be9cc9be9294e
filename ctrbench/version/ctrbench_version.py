import hashlib
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

RELEASE = "0.1.0"
RELEASE_DATE = datetime(2026, 10, 19)


@dataclass(frozen=True)
class Version:
    """
    ctrbench release identity.

    The semantic version identifies the release; the hash identifies the
    exact package sources that produced a set of benchmark results.
    """
    major: int
    minor: int
    patch: int
    hash: str
    date: datetime

    @classmethod
    def from_release(cls, release: str, hash: str, date: datetime) -> "Version":
        """Build a Version from a 'MAJOR.MINOR.PATCH' string."""
        major, minor, patch = (int(part) for part in release.split("."))
        return cls(major=major, minor=minor, patch=patch, hash=hash, date=date)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def semver(self) -> tuple[int, int, int]:
        """Return (major, minor, patch)."""
        return (self.major, self.minor, self.patch)

    def hash_short(self, length: int = 8) -> str:
        return self.hash[:length]

    def date_string(self, fmt: str = "%Y-%m-%d") -> str:
        return self.date.strftime(fmt)

    def full_version(self) -> str:
        """Return e.g. '0.1.0 (hash: 1a2b3c4d, date: 2026-10-19)'."""
        return f"{self} (hash: {self.hash_short()}, date: {self.date_string()})"


def _source_hash(package_dir: Path) -> str:
    """
    SHA256 over the package's Python sources, in sorted path order.
    """
    hasher = hashlib.sha256()
    for path in sorted(package_dir.rglob("*.py")):
        if "__pycache__" in path.parts:
            continue
        try:
            hasher.update(path.read_bytes())
        except OSError:
            continue
    return hasher.hexdigest()


CTRBENCH_VERSION = Version.from_release(
    RELEASE,
    hash=_source_hash(Path(__file__).resolve().parent.parent),
    date=RELEASE_DATE,
)
