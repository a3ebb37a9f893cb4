"""Platform and architecture detection.

Release assets are named after the target system, e.g.
``surreal-v2.3.3.linux-amd64.tgz`` or ``surreal-v2.3.3.windows-amd64.exe``.
This module maps the running interpreter's OS and CPU to those naming
tokens. Detection of the host is cached; the mapping itself is pure and
takes the raw values as arguments so it can be tested for any host.
"""

from __future__ import annotations

import os as _os
import platform as _platform
import sys as _sys
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache

from setup_surrealdb.core.result import Err, Ok, Result

__all__ = [
    "Arch",
    "Platform",
    "PlatformTokens",
    "UnsupportedArch",
    "UnsupportedPlatform",
    "detect_arch",
    "detect_platform",
    "machine_name",
    "resolve_platform",
]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self == Platform.WINDOWS else ""

    def exe_name(self, name: str) -> str:
        """Get executable name with platform-appropriate suffix.

        Example: exe_name("surreal") -> "surreal.exe" on Windows, "surreal" elsewhere.
        """
        return f"{name}{self.exe_suffix}"


class Arch(Enum):
    """CPU architecture."""

    X64 = auto()
    ARM64 = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()


# Tokens used in release asset file names
_OS_TOKENS: dict[Platform, str] = {
    Platform.WINDOWS: "windows",
    Platform.LINUX: "linux",
    Platform.MACOS: "darwin",
}

_ARCH_TOKENS: dict[Arch, str] = {
    Arch.ARM64: "arm64",
    Arch.X64: "amd64",
}


@dataclass(frozen=True, slots=True)
class UnsupportedPlatform:
    system: str

    @property
    def message(self) -> str:
        return f"Unable to determine operating system: {self.system}"


@dataclass(frozen=True, slots=True)
class UnsupportedArch:
    machine: str

    @property
    def message(self) -> str:
        return f"Unable to determine the system architecture: {self.machine}"


@dataclass(frozen=True, slots=True)
class PlatformTokens:
    """Asset naming tokens for one OS/CPU pair.

    Attributes:
        os_token: "windows", "linux" or "darwin"
        arch_token: "arm64" or "amd64"
    """

    os_token: str
    arch_token: str

    def __str__(self) -> str:
        return f"{self.os_token}-{self.arch_token}"


def detect_platform(system: str | None = None) -> Platform:
    """Map a ``sys.platform`` value to a Platform.

    Args:
        system: Value to map; defaults to the running interpreter's sys.platform
    """
    value = (_sys.platform if system is None else system).lower()
    if value.startswith("linux"):
        return Platform.LINUX
    if value.startswith("darwin"):
        return Platform.MACOS
    if value.startswith("win32"):
        return Platform.WINDOWS
    return Platform.UNKNOWN


@lru_cache(maxsize=1)
def machine_name() -> str:
    """Return the raw machine name of the host (cached)."""
    # NOTE: avoid platform.machine() on Windows, it may query WMI and hang.
    if detect_platform() == Platform.WINDOWS:
        return (
            _os.environ.get("PROCESSOR_ARCHITEW6432")
            or _os.environ.get("PROCESSOR_ARCHITECTURE")
            or ""
        )
    return _platform.machine()


def detect_arch(machine: str | None = None) -> Arch:
    """Map a machine name (``x86_64``, ``AMD64``, ``aarch64``...) to an Arch."""
    value = (machine_name() if machine is None else machine).lower()
    if value in ("x86_64", "amd64", "x64"):
        return Arch.X64
    if value in ("aarch64", "arm64"):
        return Arch.ARM64
    return Arch.UNKNOWN


def resolve_platform(
    system: str | None = None,
    machine: str | None = None,
) -> Result[PlatformTokens, UnsupportedPlatform | UnsupportedArch]:
    """Resolve the asset naming tokens for an OS/CPU pair.

    Both arguments default to the running host. The OS is checked first, so an
    unknown OS on an unknown CPU reports UnsupportedPlatform.
    """
    raw_system = _sys.platform if system is None else system
    os_token = _OS_TOKENS.get(detect_platform(raw_system))
    if os_token is None:
        return Err(UnsupportedPlatform(system=raw_system))

    raw_machine = machine_name() if machine is None else machine
    arch_token = _ARCH_TOKENS.get(detect_arch(raw_machine))
    if arch_token is None:
        return Err(UnsupportedArch(machine=raw_machine))

    return Ok(PlatformTokens(os_token=os_token, arch_token=arch_token))
