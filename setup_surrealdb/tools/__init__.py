"""Release index, transport and installation building blocks.

- HTTP client for the release index and downloads (http.py)
- Release URLs, metadata and asset selection (release.py)
- Rate-limit aware metadata fetch (fetch.py)
- Download, extraction and tool cache (download.py, extract.py, cache.py)
"""

from setup_surrealdb.tools.cache import CacheError, ToolCache
from setup_surrealdb.tools.download import DownloadFailed, Downloader
from setup_surrealdb.tools.extract import ExtractError, ExtractResult, extract_archive
from setup_surrealdb.tools.fetch import (
    RetriesExhausted,
    TransportError,
    UnknownStatus,
    classify_response,
    fetch_release,
)
from setup_surrealdb.tools.http import (
    HttpClient,
    HttpError,
    HttpResponse,
    MockHttpClient,
    RealHttpClient,
)
from setup_surrealdb.tools.release import (
    InvalidReleaseData,
    InvalidVersionFormat,
    NoMatchingAsset,
    ReleaseAsset,
    ReleaseMetadata,
    format_version_url,
    parse_release,
    select_asset,
)

__all__ = [
    # Cache
    "CacheError",
    "ToolCache",
    # Download / extract
    "DownloadFailed",
    "Downloader",
    "ExtractError",
    "ExtractResult",
    "extract_archive",
    # Fetch
    "RetriesExhausted",
    "TransportError",
    "UnknownStatus",
    "classify_response",
    "fetch_release",
    # HTTP
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    # Release
    "InvalidReleaseData",
    "InvalidVersionFormat",
    "NoMatchingAsset",
    "ReleaseAsset",
    "ReleaseMetadata",
    "format_version_url",
    "parse_release",
    "select_asset",
]
