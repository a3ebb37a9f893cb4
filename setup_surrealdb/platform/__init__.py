"""Platform abstraction layer."""

from .detection import (
    Arch,
    Platform,
    PlatformTokens,
    UnsupportedArch,
    UnsupportedPlatform,
    detect_arch,
    detect_platform,
    resolve_platform,
)
from .files import append_text, atomic_write_text

__all__ = [
    # detection
    "Arch",
    "Platform",
    "PlatformTokens",
    "UnsupportedArch",
    "UnsupportedPlatform",
    "detect_arch",
    "detect_platform",
    "resolve_platform",
    # files
    "append_text",
    "atomic_write_text",
]
