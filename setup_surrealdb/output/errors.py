"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from setup_surrealdb.core.errors import ErrorCode
from setup_surrealdb.platform.detection import UnsupportedArch, UnsupportedPlatform
from setup_surrealdb.services.errors import SetupError, UnexpectedError
from setup_surrealdb.tools.cache import CacheError
from setup_surrealdb.tools.download import DownloadFailed
from setup_surrealdb.tools.extract import ExtractError
from setup_surrealdb.tools.fetch import RetriesExhausted, TransportError, UnknownStatus
from setup_surrealdb.tools.release import (
    InvalidReleaseData,
    InvalidVersionFormat,
    NoMatchingAsset,
)

__all__ = ["setup_error_exit_code", "setup_error_message"]


def setup_error_message(error: SetupError) -> str:
    """Human-readable, single-line failure message."""
    return error.message


def setup_error_exit_code(error: SetupError) -> ErrorCode:
    """Get exit code for a setup error."""
    match error:
        case InvalidVersionFormat() | NoMatchingAsset():
            return ErrorCode.USER_ERROR
        case UnsupportedPlatform() | UnsupportedArch():
            return ErrorCode.ENV_ERROR
        case TransportError() | RetriesExhausted() | UnknownStatus() | InvalidReleaseData():
            return ErrorCode.NETWORK_ERROR
        case DownloadFailed():
            return ErrorCode.NETWORK_ERROR
        case ExtractError() | CacheError():
            return ErrorCode.IO_ERROR
        case UnexpectedError():
            return ErrorCode.USER_ERROR
