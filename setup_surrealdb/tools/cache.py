"""Tool cache - installed tool versions keyed by (tool, version).

Layout matches the hosted runner tool cache so entries written here are
found by other actions, and vice versa::

    <root>/<tool>/<version>/<arch>/          installed files
    <root>/<tool>/<version>/<arch>.complete  marker, written last

An entry without its marker is an interrupted install and is never reported
as a hit.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from setup_surrealdb.core.result import Err, Ok, Result
from setup_surrealdb.platform.files import atomic_write_text

__all__ = ["CacheError", "ToolCache"]


@dataclass(frozen=True, slots=True)
class CacheError:
    tool: str
    version: str
    reason: str

    @property
    def message(self) -> str:
        return f"Unable to cache {self.tool} {self.version}: {self.reason}"


def _clean_version(version: str) -> str:
    return version.strip().removeprefix("v")


class ToolCache:
    """Tool cache rooted at ``root`` for one CPU architecture.

    Usage:
        cache = ToolCache(Path(os.environ["RUNNER_TOOL_CACHE"]), arch="x64")
        if (path := cache.find("surrealdb", "v2.3.3")) is None:
            path = cache.save(extracted_dir, "surrealdb", "v2.3.3").unwrap()
    """

    def __init__(self, root: Path, arch: str) -> None:
        self._root = root
        self._arch = arch

    @property
    def root(self) -> Path:
        return self._root

    def _version_dir(self, tool: str, version: str) -> Path:
        return self._root / tool / _clean_version(version)

    def _entry_dir(self, tool: str, version: str) -> Path:
        return self._version_dir(tool, version) / self._arch

    def _marker(self, tool: str, version: str) -> Path:
        return self._version_dir(tool, version) / f"{self._arch}.complete"

    def find(self, tool: str, version: str) -> Path | None:
        """Return the cached directory for (tool, version), or None."""
        if not tool or not _clean_version(version):
            return None
        entry = self._entry_dir(tool, version)
        if entry.is_dir() and self._marker(tool, version).is_file():
            return entry
        return None

    def save(self, source_dir: Path, tool: str, version: str) -> Result[Path, CacheError]:
        """Copy source_dir into the cache and mark the entry complete.

        Args:
            source_dir: Directory holding the installed files
            tool: Tool name
            version: Version (a leading "v" is dropped)

        Returns:
            Ok with the cached directory, or Err with CacheError
        """
        if not source_dir.is_dir():
            return Err(CacheError(tool, version, f"not a directory: {source_dir}"))

        existing = self.find(tool, version)
        if existing is not None:
            return Ok(existing)

        entry = self._entry_dir(tool, version)
        marker = self._marker(tool, version)
        try:
            if entry.exists():
                shutil.rmtree(entry)
            entry.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(source_dir, entry)
            atomic_write_text(marker, f"{datetime.now().isoformat()}\n")
        except OSError as e:
            return Err(CacheError(tool, version, str(e)))

        return Ok(entry)

    def versions(self, tool: str) -> list[str]:
        """List completed versions of a tool for this architecture."""
        tool_dir = self._root / tool
        if not tool_dir.is_dir():
            return []
        found = [
            child.name
            for child in tool_dir.iterdir()
            if child.is_dir() and self.find(tool, child.name) is not None
        ]
        return sorted(found, key=_version_key)


def _version_key(version: str) -> tuple[tuple[int, str], ...]:
    key: list[tuple[int, str]] = []
    for part in version.replace("-", ".").split("."):
        key.append((int(part), "") if part.isdigit() else (-1, part))
    return tuple(key)
