"""Asset downloader.

Every download lands in its own fresh directory under the runner temp
directory (``<temp>/<uuid>/<asset name>``), so concurrent or repeated runs
never collide and the containing directory holds nothing but the asset.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from setup_surrealdb.core.result import Err, Ok, Result
from setup_surrealdb.tools.http import HttpError

if TYPE_CHECKING:
    from collections.abc import Callable

    from setup_surrealdb.tools.http import HttpClient
    from setup_surrealdb.tools.release import ReleaseAsset

__all__ = ["DownloadFailed", "Downloader"]


@dataclass(frozen=True, slots=True)
class DownloadFailed:
    url: str
    cause: HttpError

    @property
    def message(self) -> str:
        return f"Unable to download {self.url}: {self.cause.message}"


class Downloader:
    """Downloads release assets into unique scratch directories.

    Usage:
        downloader = Downloader(http, temp_dir)
        result = downloader.download(asset)
        if is_ok(result):
            print(f"Downloaded to: {result.value}")
    """

    def __init__(
        self,
        http: HttpClient,
        temp_dir: Path,
        *,
        unique_name: Callable[[], str] | None = None,
    ) -> None:
        self._http = http
        self._temp_dir = temp_dir
        self._unique_name = unique_name or (lambda: str(uuid.uuid4()))

    def target_for(self, asset: ReleaseAsset) -> Path:
        """Return a fresh download path for asset."""
        return self._temp_dir / self._unique_name() / asset.name

    def download(self, asset: ReleaseAsset) -> Result[Path, DownloadFailed]:
        target = self.target_for(asset)
        result = self._http.download(asset.download_url, target)

        if isinstance(result, Err):
            # Clean up partial download
            target.unlink(missing_ok=True)
            return Err(DownloadFailed(url=asset.download_url, cause=result.error))

        return Ok(result.value)
