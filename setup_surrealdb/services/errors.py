"""Error taxonomy of a setup run.

Each layer defines the variants it can produce; this module closes them into
one union so the CLI and the renderer can ``match`` exhaustively.
"""

from __future__ import annotations

from dataclasses import dataclass

from setup_surrealdb.platform.detection import UnsupportedArch, UnsupportedPlatform
from setup_surrealdb.tools.cache import CacheError
from setup_surrealdb.tools.download import DownloadFailed
from setup_surrealdb.tools.extract import ExtractError
from setup_surrealdb.tools.fetch import RetriesExhausted, TransportError, UnknownStatus
from setup_surrealdb.tools.release import (
    InvalidReleaseData,
    InvalidVersionFormat,
    NoMatchingAsset,
)

__all__ = ["SetupError", "UnexpectedError"]


@dataclass(frozen=True, slots=True)
class UnexpectedError:
    """An exception that escaped the install steps, coerced to text."""

    text: str

    @property
    def message(self) -> str:
        return self.text


SetupError = (
    InvalidVersionFormat
    | UnsupportedPlatform
    | UnsupportedArch
    | TransportError
    | RetriesExhausted
    | UnknownStatus
    | InvalidReleaseData
    | NoMatchingAsset
    | DownloadFailed
    | ExtractError
    | CacheError
    | UnexpectedError
)
