"""HTTP client abstraction for the release index and asset downloads.

A non-2xx status is not an error at this layer: ``get`` returns it as an
``Ok(HttpResponse)`` so callers can inspect rate-limit headers. Only
transport failures (DNS, refused connection, TLS, timeout) are ``Err``.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from email.message import Message
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from setup_surrealdb.core.result import Err, Ok, Result

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
]

USER_AGENT = "github-surrealdb-release"


@dataclass(frozen=True, slots=True)
class HttpError:
    """A request that produced no usable response.

    ``status`` is 0 when the request never reached the server.
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


def _lower_keys(headers: Mapping[str, str]) -> dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """A completed GET response.

    Header names are stored lower-cased; use ``header()`` for lookups.
    """

    url: str
    status: int
    reason: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _lower_keys(self.headers))

    @property
    def ok(self) -> bool:
        return self.status == 200

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def text(self) -> str:
        return self.body.decode("utf-8")


@runtime_checkable
class HttpClient(Protocol):
    """Transport used by the fetcher and the downloader."""

    def get(self, url: str) -> Result[HttpResponse, HttpError]:
        """Issue a GET and return the response, whatever its status.

        Returns:
            Ok with HttpResponse, or Err with HttpError on transport failure
        """
        ...

    def download(
        self,
        url: str,
        dest: Path,
        progress: Callable[[int, int], None] | None = None,
    ) -> Result[Path, HttpError]:
        """Stream URL into dest, calling progress(downloaded, total) per chunk.

        Any non-2xx status is an Err here, unlike get().
        """
        ...


def _headers_of(message: Message | None) -> dict[str, str]:
    if message is None:
        return {}
    return {k: v for k, v in message.items()}


class RealHttpClient:
    """urllib transport with the system trust store.

    Error statuses on get() come back as data, with the body drained and the
    connection closed.
    """

    def __init__(self, timeout: float = 30.0, user_agent: str = USER_AGENT) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def _open(self, url: str) -> Any:
        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent})
        return urllib.request.urlopen(req, timeout=self.timeout, context=self._ssl_context)

    def get(self, url: str) -> Result[HttpResponse, HttpError]:
        try:
            with self._open(url) as response:
                return Ok(
                    HttpResponse(
                        url=url,
                        status=response.status,
                        reason=response.reason or "",
                        headers=_headers_of(response.headers),
                        body=response.read(),
                    )
                )
        except urllib.error.HTTPError as e:
            # The error doubles as the response; read it fully so the socket is released.
            body = b""
            if e.fp is not None:
                try:
                    body = e.read()
                finally:
                    e.close()
            return Ok(
                HttpResponse(
                    url=url,
                    status=e.code,
                    reason=str(e.reason or ""),
                    headers=_headers_of(e.headers),
                    body=body,
                )
            )
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def download(
        self,
        url: str,
        dest: Path,
        progress: Callable[[int, int], None] | None = None,
    ) -> Result[Path, HttpError]:
        try:
            with self._open(url) as response:
                total = int(response.headers.get("Content-Length", 0))
                downloaded = 0
                chunk_size = 8192

                dest.parent.mkdir(parents=True, exist_ok=True)

                with open(dest, "wb") as f:
                    while True:
                        chunk = response.read(chunk_size)
                        if not chunk:
                            break
                        f.write(chunk)
                        downloaded += len(chunk)
                        if progress:
                            progress(downloaded, total)

                return Ok(dest)

        except urllib.error.HTTPError as e:
            if e.fp is not None:
                e.close()
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Download timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are queued per URL and served in order; the last queued
    response for a URL is repeated once the queue is down to one entry.

    Usage:
        client = MockHttpClient()
        client.add_json("https://api.example.com/data", {"key": "value"})
        result = client.get("https://api.example.com/data")
        assert result.value.status == 200
    """

    def __init__(self) -> None:
        self._responses: dict[str, deque[HttpResponse | HttpError]] = {}
        self._downloads: dict[str, bytes | HttpError] = {}
        self.calls: list[tuple[str, str]] = []

    def add_response(self, url: str, response: HttpResponse | HttpError) -> None:
        """Queue a response (or transport error) for URL."""
        self._responses.setdefault(url, deque()).append(response)

    def add_status(
        self,
        url: str,
        status: int,
        *,
        reason: str = "",
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> None:
        self.add_response(
            url,
            HttpResponse(url=url, status=status, reason=reason, headers=headers or {}, body=body),
        )

    def add_json(self, url: str, data: object) -> None:
        """Queue a 200 response with a JSON body."""
        self.add_status(url, 200, reason="OK", body=json.dumps(data).encode("utf-8"))

    def set_download(self, url: str, response: bytes | HttpError) -> None:
        """Set download content for URL."""
        self._downloads[url] = response

    def get_calls(self) -> list[str]:
        return [url for kind, url in self.calls if kind == "get"]

    def download_calls(self) -> list[str]:
        return [url for kind, url in self.calls if kind == "download"]

    def get(self, url: str) -> Result[HttpResponse, HttpError]:
        self.calls.append(("get", url))

        queue = self._responses.get(url)
        if not queue:
            return Ok(HttpResponse(url=url, status=404, reason="Not Found (mock)"))

        response = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def download(
        self,
        url: str,
        dest: Path,
        progress: Callable[[int, int], None] | None = None,
    ) -> Result[Path, HttpError]:
        """Mock download - writes predefined content to dest."""
        self.calls.append(("download", url))

        if url not in self._downloads:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))

        response = self._downloads[url]
        if isinstance(response, HttpError):
            return Err(response)

        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(response)

        if progress:
            progress(len(response), len(response))

        return Ok(dest)
