"""Archive extraction for downloaded release assets.

Unix SurrealDB releases ship as ``.tgz`` archives holding the ``surreal``
binary. Extraction skips anything that could escape the destination
(absolute names, ``..``, links, devices) and keeps unix permission bits so
the binary stays executable.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import stat
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from setup_surrealdb.core.result import Err, Ok, Result

__all__ = ["ExtractError", "ExtractResult", "extract_archive"]


@dataclass(frozen=True, slots=True)
class ExtractError:
    """Extraction error details.

    Attributes:
        archive: Path to the archive that failed
        reason: Human-readable error message
    """

    archive: Path
    reason: str

    @property
    def message(self) -> str:
        return f"{self.reason}: {self.archive}"


@dataclass(frozen=True, slots=True)
class ExtractResult:
    directory: Path
    files_count: int


def _safe_relative_path(member_name: str) -> Path | None:
    """Return a sanitized relative extraction path, or None if unsafe."""
    normalized = member_name.replace("\\", "/")
    if normalized.startswith("/"):
        return None

    parts = PurePosixPath(normalized).parts
    if not parts:
        return None
    if any(part in {"", ".", ".."} for part in parts):
        return None
    if parts[0].endswith(":"):
        return None

    return Path(*parts)


def _is_within_root(root: Path, target: Path) -> bool:
    try:
        return target.resolve().is_relative_to(root.resolve())
    except OSError:
        return False


def _extract_tar(archive: Path, dest: Path) -> Result[ExtractResult, ExtractError]:
    try:
        dest.mkdir(parents=True, exist_ok=True)
        root = dest.resolve()
        files_count = 0

        with tarfile.open(archive, "r:*") as tar:
            for member in tar.getmembers():
                # Skip directories and non-regular entries (symlink, hardlink, device, fifo)
                if not member.isreg():
                    continue

                rel_path = _safe_relative_path(member.name)
                if rel_path is None:
                    continue

                full_path = dest / rel_path
                if not _is_within_root(root, full_path):
                    continue

                src = tar.extractfile(member)
                if src is None:
                    continue

                full_path.parent.mkdir(parents=True, exist_ok=True)
                with src, open(full_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)

                mode = member.mode & 0o777
                if mode:
                    with contextlib.suppress(OSError):
                        os.chmod(full_path, mode)

                files_count += 1

        return Ok(ExtractResult(directory=dest, files_count=files_count))

    except tarfile.TarError as e:
        return Err(ExtractError(archive=archive, reason=f"Tar extraction failed: {e}"))
    except OSError as e:
        return Err(ExtractError(archive=archive, reason=f"IO error: {e}"))


def _extract_zip(archive: Path, dest: Path) -> Result[ExtractResult, ExtractError]:
    try:
        dest.mkdir(parents=True, exist_ok=True)
        root = dest.resolve()
        files_count = 0

        with zipfile.ZipFile(archive, "r") as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue

                rel_path = _safe_relative_path(info.filename)
                if rel_path is None:
                    continue

                unix_attrs = info.external_attr >> 16
                if (unix_attrs & 0o170000) == stat.S_IFLNK:
                    continue

                full_path = dest / rel_path
                if not _is_within_root(root, full_path):
                    continue

                full_path.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(full_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)

                if unix_attrs & 0o777:
                    with contextlib.suppress(OSError):
                        os.chmod(full_path, unix_attrs & 0o777)

                files_count += 1

        return Ok(ExtractResult(directory=dest, files_count=files_count))

    except zipfile.BadZipFile as e:
        return Err(ExtractError(archive=archive, reason=f"Invalid zip file: {e}"))
    except OSError as e:
        return Err(ExtractError(archive=archive, reason=f"IO error: {e}"))


def extract_archive(archive: Path, dest: Path) -> Result[ExtractResult, ExtractError]:
    """Extract a .tgz/.tar.gz/.tar.xz or .zip archive into dest.

    Args:
        archive: Path to archive file
        dest: Directory to extract to (created if missing)

    Returns:
        Ok with ExtractResult, or Err with ExtractError
    """
    if not archive.exists():
        return Err(ExtractError(archive=archive, reason="Archive not found"))

    # NOTE: Path.suffixes is unreliable for names like "surreal-v2.3.3.linux-amd64.tgz".
    name = archive.name.lower()
    if name.endswith((".tar.gz", ".tgz", ".tar.xz", ".txz")):
        return _extract_tar(archive, dest)
    if name.endswith(".zip"):
        return _extract_zip(archive, dest)
    return Err(ExtractError(archive=archive, reason=f"Unsupported archive format: {archive.name}"))
