"""Rate-limit aware fetch of release metadata.

The GitHub API signals throttling with ``403 Forbidden`` plus one of:

- ``retry-after: <seconds>`` (secondary rate limit)
- ``x-ratelimit-remaining: 0`` with ``x-ratelimit-reset: <epoch seconds>``
  (primary quota exhausted)

Every response is classified once into a closed set of outcomes, and
``fetch_release`` dispatches on that outcome. ``retry-after`` takes
precedence when a response carries both signals. Each backoff waits five
seconds longer than the server asked for.

Transport failures are fatal and never retried. Unrecognised statuses are
fatal too, whatever budget is left.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from setup_surrealdb.core.result import Err, Ok, Result
from setup_surrealdb.output.console import ConsoleProtocol
from setup_surrealdb.tools.http import HttpClient, HttpError, HttpResponse
from setup_surrealdb.tools.release import InvalidReleaseData, ReleaseMetadata, parse_release

__all__ = [
    "BACKOFF_PADDING_SECONDS",
    "Classified",
    "FetchError",
    "QuotaExhausted",
    "RetriesExhausted",
    "RetryAfter",
    "Success",
    "TransportError",
    "Unknown",
    "UnknownStatus",
    "classify_response",
    "fetch_release",
]

BACKOFF_PADDING_SECONDS = 5

_FORBIDDEN = 403


# -----------------------------------------------------------------------------
# Response classification
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Success:
    response: HttpResponse


@dataclass(frozen=True, slots=True)
class RetryAfter:
    seconds: float


@dataclass(frozen=True, slots=True)
class QuotaExhausted:
    reset_epoch: float


@dataclass(frozen=True, slots=True)
class Unknown:
    status: int
    reason: str


Classified = Success | RetryAfter | QuotaExhausted | Unknown


def _parse_seconds(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if math.isfinite(seconds) else None


def classify_response(response: HttpResponse) -> Classified:
    """Classify a response. Header checks happen here and nowhere else."""
    if response.ok:
        return Success(response)

    if response.status == _FORBIDDEN:
        retry_after = response.header("retry-after")
        if retry_after:
            return RetryAfter(seconds=_parse_seconds(retry_after) or 0.0)

        if response.header("x-ratelimit-remaining") == "0":
            reset = _parse_seconds(response.header("x-ratelimit-reset"))
            return QuotaExhausted(reset_epoch=reset if reset is not None else 0.0)

    return Unknown(status=response.status, reason=response.reason or "unknown")


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransportError:
    url: str
    cause: HttpError

    @property
    def message(self) -> str:
        return f"The client request: {self.url} generated the error: {self.cause.message}"


@dataclass(frozen=True, slots=True)
class RetriesExhausted:
    url: str
    attempts: int

    @property
    def message(self) -> str:
        return f"The retry count was exhausted for client request: {self.url}"


@dataclass(frozen=True, slots=True)
class UnknownStatus:
    url: str
    status: int
    reason: str

    @property
    def message(self) -> str:
        return (
            f"The client request: {self.url} returned an unknown status code: "
            f"{self.status} with message: {self.reason}"
        )


FetchError = TransportError | RetriesExhausted | UnknownStatus | InvalidReleaseData


# -----------------------------------------------------------------------------
# Fetch loop
# -----------------------------------------------------------------------------


def _sleep_seconds(sleep: Callable[[float], None], seconds: float) -> None:
    # A reset time already in the past yields a non-positive wait.
    sleep(max(0.0, seconds))


def fetch_release(
    http: HttpClient,
    url: str,
    *,
    max_attempts: int,
    console: ConsoleProtocol,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.time,
) -> Result[ReleaseMetadata, FetchError]:
    """Fetch and parse release metadata, backing off on rate limits.

    Args:
        http: Transport
        url: Release metadata URL (see format_version_url)
        max_attempts: Number of rate-limit retries allowed; 0 disables retrying
        console: Receives one warning per backoff
        sleep: Wait function, injectable for tests
        clock: Current epoch seconds, injectable for tests

    Returns:
        Ok with ReleaseMetadata, or Err with a FetchError
    """
    retries = 0

    while True:
        result = http.get(url)
        if isinstance(result, Err):
            return Err(TransportError(url=url, cause=result.error))

        outcome = classify_response(result.value)
        if isinstance(outcome, Success):
            return parse_release(url, outcome.response.body)

        if retries == max_attempts:
            return Err(RetriesExhausted(url=url, attempts=retries))

        match outcome:
            case RetryAfter(seconds=seconds):
                wait = seconds + BACKOFF_PADDING_SECONDS
            case QuotaExhausted(reset_epoch=reset_epoch):
                wait = reset_epoch - math.floor(clock()) + BACKOFF_PADDING_SECONDS
            case Unknown(status=status, reason=reason):
                return Err(UnknownStatus(url=url, status=status, reason=reason))

        console.warning(
            f"You have exceeded your rate limit. Retrying in {max(0, math.ceil(wait))} seconds."
        )
        _sleep_seconds(sleep, wait)
        retries += 1
