"""Tests for services/setup.py - the install orchestrator."""

from __future__ import annotations

import io
import tarfile
from pathlib import Path

import pytest

from setup_surrealdb.core.config import SetupConfig
from setup_surrealdb.core.errors import ErrorCode
from setup_surrealdb.core.result import Err, Ok, Result
from setup_surrealdb.output.console import MockConsole, Style
from setup_surrealdb.output.runner import MockRunner
from setup_surrealdb.services.setup import (
    OUTPUT_CACHE_HIT,
    OUTPUT_PATH,
    OUTPUT_RETRY_COUNT,
    OUTPUT_VERSION,
    SetupService,
)
from setup_surrealdb.tools.cache import ToolCache
from setup_surrealdb.tools.extract import ExtractError, ExtractResult
from setup_surrealdb.tools.http import HttpError, MockHttpClient
from setup_surrealdb.tools.release import RELEASES_URL

VERSION = "v2.3.3"
TAG_URL = f"{RELEASES_URL}/tags/{VERSION}"
LATEST_URL = f"{RELEASES_URL}/latest"
DOWNLOAD = "https://github.com/surrealdb/surrealdb/releases/download/v2.3.3"
ASSET_NAMES = [
    "surreal-v2.3.3.darwin-amd64.tgz",
    "surreal-v2.3.3.darwin-arm64.tgz",
    "surreal-v2.3.3.linux-amd64.tgz",
    "surreal-v2.3.3.linux-arm64.tgz",
    "surreal-v2.3.3.windows-amd64.exe",
]


def release_json(tag: str = VERSION) -> dict[str, object]:
    return {
        "tag_name": tag,
        "assets": [
            {"name": name, "browser_download_url": f"{DOWNLOAD}/{name}"} for name in ASSET_NAMES
        ],
    }


def surreal_tgz() -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        content = b"#!/bin/sh\necho surreal\n"
        info = tarfile.TarInfo(name="surreal")
        info.size = len(content)
        info.mode = 0o755
        tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


class Harness:
    """Wires a SetupService to mock collaborators."""

    def __init__(
        self,
        tmp_path: Path,
        *,
        version: str = VERSION,
        retry_count: str = "",
        system: str = "linux",
        machine: str = "x86_64",
    ) -> None:
        self.config = SetupConfig(
            temp_dir=tmp_path / "temp",
            tool_cache_dir=tmp_path / "cache",
            version=version,
            retry_count=retry_count,
        )
        self.http = MockHttpClient()
        self.runner = MockRunner()
        self.console = MockConsole()
        self.waits: list[float] = []
        self.system = system
        self.machine = machine

    def service(self, **kwargs: object) -> SetupService:
        return SetupService(
            config=self.config,
            http=self.http,
            runner=self.runner,
            console=self.console,
            system=self.system,
            machine=self.machine,
            sleep=self.waits.append,
            **kwargs,  # type: ignore[arg-type]
        )

    def serve_release(self, url: str = TAG_URL, tag: str = VERSION) -> None:
        self.http.add_json(url, release_json(tag))
        self.http.set_download(f"{DOWNLOAD}/surreal-v2.3.3.linux-amd64.tgz", surreal_tgz())
        self.http.set_download(f"{DOWNLOAD}/surreal-v2.3.3.linux-arm64.tgz", surreal_tgz())
        self.http.set_download(f"{DOWNLOAD}/surreal-v2.3.3.windows-amd64.exe", b"MZ")


def scratch_entries(harness: Harness) -> list[Path]:
    temp_dir = harness.config.temp_dir
    return sorted(temp_dir.iterdir()) if temp_dir.exists() else []


def snapshot(root: Path) -> dict[str, tuple[bytes, int]]:
    return {
        str(p.relative_to(root)): (p.read_bytes(), p.stat().st_mtime_ns)
        for p in root.rglob("*")
        if p.is_file()
    }


@pytest.fixture
def harness(tmp_path: Path) -> Harness:
    return Harness(tmp_path)


# =============================================================================
# Cache miss / hit
# =============================================================================


class TestInstallCacheMiss:
    """Download, unpack, cache, publish."""

    def test_linux_install(self, harness: Harness) -> None:
        harness.serve_release()
        service = harness.service()

        result = service.run()

        assert result is not None
        assert result.version == VERSION
        assert result.cache_hit is False
        assert (result.path / "surreal").exists()
        assert result.path == service.cache.find("surrealdb", VERSION)
        assert harness.runner.outputs == {
            OUTPUT_RETRY_COUNT: "3",
            OUTPUT_VERSION: VERSION,
            OUTPUT_PATH: str(result.path),
            OUTPUT_CACHE_HIT: "false",
        }
        assert harness.runner.paths == [result.path]
        assert harness.http.download_calls() == [f"{DOWNLOAD}/surreal-v2.3.3.linux-amd64.tgz"]
        assert not harness.runner.failed
        assert harness.console.count(Style.SUCCESS) == 1

    def test_archive_removed_after_extract(self, harness: Harness) -> None:
        harness.serve_release()

        harness.service().run()

        archives = list(harness.config.temp_dir.rglob("*.tgz"))
        assert archives == []

    def test_scratch_space_removed(self, harness: Harness) -> None:
        harness.serve_release()

        result = harness.service().run()

        assert result is not None
        assert scratch_entries(harness) == []
        assert (result.path / "surreal").exists()

    def test_arm64_asset(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, machine="aarch64")
        harness.serve_release()

        assert harness.service().run() is not None
        assert harness.http.download_calls() == [f"{DOWNLOAD}/surreal-v2.3.3.linux-arm64.tgz"]

    def test_windows_renames_executable(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, system="win32", machine="AMD64")
        harness.serve_release()

        result = harness.service().run()

        assert result is not None
        assert (result.path / "surreal.exe").read_bytes() == b"MZ"
        assert not (result.path / "surreal-v2.3.3.windows-amd64.exe").exists()
        assert harness.runner.outputs[OUTPUT_CACHE_HIT] == "false"
        assert scratch_entries(harness) == []

    def test_latest_resolves_tag(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, version="latest")
        harness.serve_release(url=LATEST_URL)

        result = harness.service().run()

        assert result is not None
        assert harness.runner.outputs[OUTPUT_VERSION] == VERSION
        assert harness.http.get_calls() == [LATEST_URL]


class TestInstallCacheHit:
    """A cached version is published without downloading."""

    def _prime(self, harness: Harness, tmp_path: Path) -> Path:
        src = tmp_path / "prebuilt"
        src.mkdir()
        (src / "surreal").write_text("cached")
        cache = ToolCache(harness.config.tool_cache_dir, arch="x64")
        return cache.save(src, "surrealdb", VERSION).unwrap()  # type: ignore[return-value]

    def test_cache_hit(self, harness: Harness, tmp_path: Path) -> None:
        cached = self._prime(harness, tmp_path)
        harness.serve_release()

        result = harness.service().run()

        assert result is not None
        assert result.cache_hit is True
        assert result.path == cached
        assert harness.runner.outputs[OUTPUT_CACHE_HIT] == "true"
        assert harness.runner.outputs[OUTPUT_PATH] == str(cached)
        assert harness.runner.paths == [cached]
        assert harness.http.download_calls() == []
        assert harness.console.find("Using cached SurrealDB version v2.3.3")

    def test_cache_hit_leaves_cache_untouched(self, harness: Harness, tmp_path: Path) -> None:
        cached = self._prime(harness, tmp_path)
        before = snapshot(harness.config.tool_cache_dir)
        harness.serve_release()
        extracted: list[Path] = []

        def recording_extract(archive: Path, dest: Path) -> Result[ExtractResult, ExtractError]:
            extracted.append(archive)
            return Ok(ExtractResult(directory=dest, files_count=0))

        result = harness.service(extract=recording_extract).run()

        assert result is not None
        assert result.path == cached
        assert extracted == []
        assert harness.http.download_calls() == []
        assert snapshot(harness.config.tool_cache_dir) == before
        assert scratch_entries(harness) == []

    def test_metadata_still_fetched(self, harness: Harness, tmp_path: Path) -> None:
        self._prime(harness, tmp_path)
        harness.serve_release()

        harness.service().run()

        assert harness.http.get_calls() == [TAG_URL]

    def test_second_run_hits_cache(self, harness: Harness) -> None:
        harness.serve_release()
        first = harness.service().run()

        second_runner = MockRunner()
        harness.runner = second_runner
        second = harness.service().run()

        assert first is not None and second is not None
        assert second.cache_hit is True
        assert second.path == first.path
        assert second_runner.outputs[OUTPUT_CACHE_HIT] == "true"
        assert len(harness.http.download_calls()) == 1


# =============================================================================
# Inputs
# =============================================================================


class TestVersionInput:
    """Version validation happens before any network call."""

    @pytest.mark.parametrize("version", ["invalid", "2.3.1"])
    def test_invalid_version(self, tmp_path: Path, version: str) -> None:
        harness = Harness(tmp_path, version=version)

        assert harness.service().run() is None

        assert harness.http.calls == []
        assert OUTPUT_VERSION not in harness.runner.outputs
        assert harness.runner.outputs == {}
        assert harness.runner.failures == [
            (f'Invalid SurrealDB version format: "{version}"', ErrorCode.USER_ERROR)
        ]

    def test_unknown_tag(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, version="v1.2.3.4.5")

        assert harness.service().run() is None

        assert harness.http.get_calls() == [f"{RELEASES_URL}/tags/v1.2.3.4.5"]
        assert OUTPUT_VERSION not in harness.runner.outputs
        [(message, code)] = harness.runner.failures
        assert "404" in message
        assert code == ErrorCode.NETWORK_ERROR


class TestRetryCountInput:
    """retry-count resolution and its output."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("3", "3"), ("0", "3"), ("2", "2"), ("A", "3"), ("-11", "3"), ("", "3")],
    )
    def test_output(self, tmp_path: Path, raw: str, expected: str) -> None:
        harness = Harness(tmp_path, retry_count=raw)
        harness.serve_release()

        harness.service().run()

        assert harness.runner.outputs[OUTPUT_RETRY_COUNT] == expected

    @pytest.mark.parametrize("raw", ["0", "A", "-11"])
    def test_invalid_warns(self, tmp_path: Path, raw: str) -> None:
        harness = Harness(tmp_path, retry_count=raw)
        harness.serve_release()

        harness.service().run()

        assert harness.console.find("An invalid retry-count was passed")

    def test_published_even_on_failure(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, retry_count="2")
        harness.http.add_status(TAG_URL, 500, reason="Internal Server Error")

        assert harness.service().run() is None

        assert harness.runner.outputs == {OUTPUT_RETRY_COUNT: "2"}


# =============================================================================
# Rate limiting
# =============================================================================


class TestRateLimit:
    def test_backoff_then_install(self, harness: Harness) -> None:
        harness.http.add_status(TAG_URL, 403, headers={"retry-after": "2"})
        harness.serve_release()

        result = harness.service().run()

        assert result is not None
        assert harness.waits == [7.0]
        assert harness.console.count(Style.WARNING) == 1

    def test_exhausted(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, retry_count="2")
        harness.http.add_status(TAG_URL, 403, headers={"retry-after": "1"})

        assert harness.service().run() is None

        assert len(harness.waits) == 2
        [(message, code)] = harness.runner.failures
        assert message == f"The retry count was exhausted for client request: {TAG_URL}"
        assert code == ErrorCode.NETWORK_ERROR
        assert OUTPUT_VERSION not in harness.runner.outputs


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    """Every failure ends in exactly one set_failed and no result outputs."""

    def _assert_failed(self, harness: Harness, code: ErrorCode) -> str:
        [(message, actual)] = harness.runner.failures
        assert actual == code
        for name in (OUTPUT_VERSION, OUTPUT_PATH, OUTPUT_CACHE_HIT):
            assert name not in harness.runner.outputs
        assert harness.runner.paths == []
        return message

    def test_unsupported_os_before_network(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, system="sunos5")

        assert harness.service().run() is None

        assert harness.http.calls == []
        assert "operating system" in self._assert_failed(harness, ErrorCode.ENV_ERROR)

    def test_unsupported_arch_before_network(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, machine="i686")

        assert harness.service().run() is None

        assert harness.http.calls == []
        assert "architecture" in self._assert_failed(harness, ErrorCode.ENV_ERROR)

    def test_transport_error(self, harness: Harness) -> None:
        harness.http.add_response(
            TAG_URL, HttpError(url=TAG_URL, status=0, message="Connection refused")
        )

        assert harness.service().run() is None

        message = self._assert_failed(harness, ErrorCode.NETWORK_ERROR)
        assert "Connection refused" in message

    def test_no_matching_asset(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, system="win32", machine="ARM64")
        harness.serve_release()

        assert harness.service().run() is None

        message = self._assert_failed(harness, ErrorCode.USER_ERROR)
        assert message.startswith(
            "Unable to determine the download url for SurrealDB version: v2.3.3"
        )
        assert harness.http.download_calls() == []

    def test_download_failure(self, harness: Harness) -> None:
        harness.http.add_json(TAG_URL, release_json())
        harness.http.set_download(
            f"{DOWNLOAD}/surreal-v2.3.3.linux-amd64.tgz",
            HttpError(url="u", status=503, message="Service Unavailable"),
        )

        assert harness.service().run() is None

        assert "Service Unavailable" in self._assert_failed(harness, ErrorCode.NETWORK_ERROR)

    def test_extract_failure(self, harness: Harness) -> None:
        harness.serve_release()

        def failing_extract(archive: Path, dest: Path) -> Result[ExtractResult, ExtractError]:
            dest.mkdir(parents=True)
            (dest / "partial").write_bytes(b"x")
            return Err(ExtractError(archive=archive, reason="Tar extraction failed: bad"))

        assert harness.service(extract=failing_extract).run() is None

        assert "Tar extraction failed" in self._assert_failed(harness, ErrorCode.IO_ERROR)
        assert harness.service().cache.find("surrealdb", VERSION) is None
        assert scratch_entries(harness) == []

    def test_windows_rename_failure(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        harness = Harness(tmp_path, system="win32", machine="AMD64")
        harness.serve_release()

        def failing_rename(path: Path, target: Path) -> Path:
            raise PermissionError(13, "Access is denied")

        monkeypatch.setattr(Path, "rename", failing_rename)

        assert harness.service().run() is None

        message = self._assert_failed(harness, ErrorCode.IO_ERROR)
        assert "Rename failed" in message
        assert "Access is denied" in message

    def test_non_utf8_release_body(self, harness: Harness) -> None:
        harness.http.add_status(TAG_URL, 200, body=b"\xff\xfe{}")

        assert harness.service().run() is None

        message = self._assert_failed(harness, ErrorCode.NETWORK_ERROR)
        assert TAG_URL in message
        assert harness.http.download_calls() == []

    def test_unexpected_exception_is_reported(self, harness: Harness) -> None:
        harness.serve_release()

        def exploding_extract(archive: Path, dest: Path) -> Result[ExtractResult, ExtractError]:
            raise RuntimeError("disk on fire")

        assert harness.service(extract=exploding_extract).run() is None

        assert self._assert_failed(harness, ErrorCode.USER_ERROR) == "disk on fire"

    def test_install_returns_err_without_reporting(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, version="nope")

        result = harness.service().install()

        assert isinstance(result, Err)
        assert harness.runner.failures == []

    def test_install_returns_ok(self, harness: Harness) -> None:
        harness.serve_release()
        assert isinstance(harness.service().install(), Ok)
