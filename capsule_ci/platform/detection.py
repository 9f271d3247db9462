"""Host and runner platform detection.

Two notions of platform live here:

- `Platform`: the operating system this process runs on.
- `RunnerPlatform`: a matrix entry such as `windows-latest`. Its `OsFamily`
  is the only thing that decides how the built binary is named.
"""

from __future__ import annotations

import sys as _sys
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache

__all__ = [
    "OsFamily",
    "Platform",
    "RunnerPlatform",
    "default_runner_id",
    "detect_platform",
]


class OsFamily(Enum):
    """Closed set of binary naming rules."""

    POSIX = auto()
    WINDOWS = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self == OsFamily.WINDOWS else ""

    def exe_name(self, name: str) -> str:
        """Executable file name: exe_name("capsule") -> "capsule.exe" on WINDOWS."""
        return f"{name}{self.exe_suffix}"


class Platform(Enum):
    """Operating system platform of the host."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def family(self) -> OsFamily:
        return OsFamily.WINDOWS if self == Platform.WINDOWS else OsFamily.POSIX


@dataclass(frozen=True, slots=True, order=True)
class RunnerPlatform:
    """A target platform in the environment matrix.

    Attributes:
        id: Runner identifier, used verbatim in artifact names.
    """

    id: str

    def __post_init__(self) -> None:
        if not self.id or self.id != self.id.strip() or "/" in self.id:
            raise ValueError(f"invalid runner platform id: {self.id!r}")

    @property
    def family(self) -> OsFamily:
        if self.id.lower().startswith("windows"):
            return OsFamily.WINDOWS
        return OsFamily.POSIX

    def __str__(self) -> str:
        return self.id


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    """Detect the current operating system (cached)."""
    # NOTE: avoid platform.system(); on Windows it may query WMI and hang.
    system = _sys.platform.lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith(("win32", "cygwin", "msys")):
        return Platform.WINDOWS
    return Platform.UNKNOWN


_HOST_RUNNERS = {
    Platform.LINUX: "ubuntu-latest",
    Platform.MACOS: "macos-latest",
    Platform.WINDOWS: "windows-latest",
}


def default_runner_id(platform: Platform | None = None) -> str | None:
    """Runner id matching the host OS, or None if the OS is unknown."""
    return _HOST_RUNNERS.get(platform or detect_platform())
