"""SurrealDB release index: URLs, metadata model and asset selection.

The release index is the GitHub Releases API of ``surrealdb/surrealdb``.
A release is reduced to the two things the installer needs: its tag and its
ordered list of assets.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from setup_surrealdb.core.result import Err, Ok, Result
from setup_surrealdb.core.structured import as_str_dict, get_list, get_str
from setup_surrealdb.platform.detection import PlatformTokens

__all__ = [
    "RELEASES_URL",
    "TOOL_NAME",
    "InvalidReleaseData",
    "InvalidVersionFormat",
    "NoMatchingAsset",
    "ReleaseAsset",
    "ReleaseMetadata",
    "format_version_url",
    "parse_release",
    "select_asset",
]

TOOL_NAME = "surrealdb"
RELEASES_URL = "https://api.github.com/repos/surrealdb/surrealdb/releases"


@dataclass(frozen=True, slots=True)
class InvalidVersionFormat:
    version: str

    @property
    def message(self) -> str:
        return f'Invalid SurrealDB version format: "{self.version}"'


@dataclass(frozen=True, slots=True)
class InvalidReleaseData:
    url: str
    reason: str

    @property
    def message(self) -> str:
        return f"The client request: {self.url} returned invalid release data: {self.reason}"


@dataclass(frozen=True, slots=True)
class NoMatchingAsset:
    version: str
    platform: str

    @property
    def message(self) -> str:
        return (
            f"Unable to determine the download url for SurrealDB version: {self.version} "
            f"({self.platform})"
        )


@dataclass(frozen=True, slots=True)
class ReleaseAsset:
    name: str
    download_url: str


@dataclass(frozen=True, slots=True)
class ReleaseMetadata:
    """Parsed release.

    Attributes:
        tag_name: Release tag, e.g. "v2.3.3"
        assets: Assets in the order the index lists them
    """

    tag_name: str
    assets: tuple[ReleaseAsset, ...]


def format_version_url(version: str) -> Result[str, InvalidVersionFormat]:
    """Return the release-metadata URL for a requested version.

    "latest" maps to the latest-release endpoint. Anything else must be a tag
    starting with "v" and is used verbatim; whether the tag exists is left to
    the index.
    """
    if version == "latest":
        return Ok(f"{RELEASES_URL}/latest")
    if not version.startswith("v"):
        return Err(InvalidVersionFormat(version=version))
    return Ok(f"{RELEASES_URL}/tags/{version}")


def parse_release(url: str, body: str | bytes) -> Result[ReleaseMetadata, InvalidReleaseData]:
    """Parse a release JSON document.

    ``body`` may be the raw response bytes, which must be UTF-8. Assets without
    a name or download URL are skipped.
    """
    try:
        text = body.decode("utf-8") if isinstance(body, bytes) else body
    except UnicodeDecodeError as e:
        return Err(InvalidReleaseData(url=url, reason=f"body is not UTF-8: {e}"))

    try:
        data_obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(InvalidReleaseData(url=url, reason=f"JSON parse error: {e}"))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(InvalidReleaseData(url=url, reason="expected a JSON object"))

    tag_name = get_str(data, "tag_name")
    if tag_name is None:
        return Err(InvalidReleaseData(url=url, reason="missing tag_name"))

    assets: list[ReleaseAsset] = []
    for item in get_list(data, "assets") or []:
        entry = as_str_dict(item)
        if entry is None:
            continue
        name = get_str(entry, "name")
        download_url = get_str(entry, "browser_download_url")
        if name and download_url:
            assets.append(ReleaseAsset(name=name, download_url=download_url))

    return Ok(ReleaseMetadata(tag_name=tag_name, assets=tuple(assets)))


def select_asset(
    release: ReleaseMetadata,
    tokens: PlatformTokens,
) -> Result[ReleaseAsset, NoMatchingAsset]:
    """Pick the first asset whose name mentions both the OS and the arch token."""
    for asset in release.assets:
        if tokens.os_token in asset.name and tokens.arch_token in asset.name:
            return Ok(asset)
    return Err(NoMatchingAsset(version=release.tag_name, platform=str(tokens)))
