"""Install a SurrealDB release and publish where it lives.

Flow of ``SetupService.install``:

1. Build the release-metadata URL for the requested version.
2. Resolve the OS/CPU naming tokens, failing before any network access.
3. Fetch the metadata, backing off on rate limits (always, even for a
   pinned tag, since "latest" must be resolved to a concrete tag).
4. Probe the tool cache for the resolved tag; on a hit, publish and stop.
5. Otherwise pick the asset for this OS/CPU, download it into a fresh temp
   directory, unpack it (Unix) or rename it to ``surreal.exe`` (Windows),
   copy the result into the tool cache and publish. The download and
   extraction directories are removed afterwards, whether or not caching
   succeeded.

``SetupService.run`` is the action boundary: it turns any failure into one
``set_failed`` call and never lets an exception out.
"""

from __future__ import annotations

import shutil
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from setup_surrealdb.core.config import INPUT_RETRY_COUNT, SetupConfig, resolve_retry_count
from setup_surrealdb.core.result import Err, Ok, Result
from setup_surrealdb.output.console import ConsoleProtocol, Style
from setup_surrealdb.output.errors import setup_error_exit_code, setup_error_message
from setup_surrealdb.output.runner import RunnerProtocol
from setup_surrealdb.platform.detection import (
    Platform,
    PlatformTokens,
    detect_arch,
    resolve_platform,
)
from setup_surrealdb.services.errors import SetupError, UnexpectedError
from setup_surrealdb.tools.cache import ToolCache
from setup_surrealdb.tools.download import Downloader
from setup_surrealdb.tools.extract import ExtractError, ExtractResult, extract_archive
from setup_surrealdb.tools.fetch import fetch_release
from setup_surrealdb.tools.http import HttpClient
from setup_surrealdb.tools.release import TOOL_NAME, format_version_url, select_asset

__all__ = [
    "OUTPUT_CACHE_HIT",
    "OUTPUT_PATH",
    "OUTPUT_RETRY_COUNT",
    "OUTPUT_VERSION",
    "InstallResult",
    "SetupService",
]

OUTPUT_VERSION = f"{TOOL_NAME}-version"
OUTPUT_PATH = f"{TOOL_NAME}-path"
OUTPUT_CACHE_HIT = "cache-hit"
OUTPUT_RETRY_COUNT = INPUT_RETRY_COUNT

WINDOWS_EXECUTABLE = Platform.WINDOWS.exe_name("surreal")

ExtractFn = Callable[[Path, Path], Result[ExtractResult, ExtractError]]


@dataclass(frozen=True, slots=True)
class InstallResult:
    """Outcome of a successful run.

    Attributes:
        version: Resolved release tag
        path: Cached directory holding the executable
        cache_hit: True if no download was needed
    """

    version: str
    path: Path
    cache_hit: bool


class SetupService:
    def __init__(
        self,
        *,
        config: SetupConfig,
        http: HttpClient,
        runner: RunnerProtocol,
        console: ConsoleProtocol,
        cache: ToolCache | None = None,
        system: str | None = None,
        machine: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        extract: ExtractFn = extract_archive,
    ) -> None:
        self._config = config
        self._http = http
        self._runner = runner
        self._console = console
        self._cache = cache or ToolCache(config.tool_cache_dir, arch=str(detect_arch(machine)))
        self._system = system
        self._machine = machine
        self._sleep = sleep
        self._clock = clock
        self._extract = extract

    @property
    def cache(self) -> ToolCache:
        return self._cache

    def run(self) -> InstallResult | None:
        """Install, reporting any failure through the runner.

        Returns:
            The InstallResult, or None if the run failed
        """
        try:
            result = self.install()
        except Exception as e:  # action boundary: nothing escapes
            result = Err(UnexpectedError(text=str(e) or type(e).__name__))

        match result:
            case Ok(value):
                return value
            case Err(error):
                self._runner.set_failed(setup_error_message(error), setup_error_exit_code(error))
                return None

    def install(self) -> Result[InstallResult, SetupError]:
        self._console.info("Installing SurrealDB...")

        url_result = format_version_url(self._config.version)
        if isinstance(url_result, Err):
            return url_result
        url = url_result.value

        tokens_result = resolve_platform(self._system, self._machine)
        if isinstance(tokens_result, Err):
            return tokens_result
        tokens = tokens_result.value
        self._console.print(f"Detected platform: {tokens}", Style.DIM)

        budget = resolve_retry_count(self._config.retry_count)
        if budget.warning:
            self._console.warning(budget.warning)
        elif self._config.retry_count.strip():
            self._console.info(f"Setting retry count to {budget.value}")
        self._runner.set_output(OUTPUT_RETRY_COUNT, budget.value)

        release_result = fetch_release(
            self._http,
            url,
            max_attempts=budget.value,
            console=self._console,
            sleep=self._sleep,
            clock=self._clock,
        )
        if isinstance(release_result, Err):
            return release_result
        release = release_result.value
        version = release.tag_name
        self._console.print(f"processing version tag: {version}", Style.DIM)

        cached = self._cache.find(TOOL_NAME, version)
        if cached is not None:
            self._console.info(f"Using cached SurrealDB version {version}")
            return Ok(self._publish(InstallResult(version=version, path=cached, cache_hit=True)))

        self._console.info(
            f"Installing SurrealDB for {tokens.os_token} of type {tokens.arch_token}"
        )

        asset_result = select_asset(release, tokens)
        if isinstance(asset_result, Err):
            return asset_result
        asset = asset_result.value

        downloaded = Downloader(self._http, self._config.temp_dir).download(asset)
        if isinstance(downloaded, Err):
            return downloaded

        # The cache keeps its own copy; scratch space goes either way.
        extract_dir = self._config.temp_dir / str(uuid.uuid4())
        scratch = (downloaded.value.parent, extract_dir)
        try:
            install_dir = self._unpack(downloaded.value, tokens, extract_dir)
            if isinstance(install_dir, Err):
                return install_dir

            saved = self._cache.save(install_dir.value, TOOL_NAME, version)
            if isinstance(saved, Err):
                return saved
        finally:
            for directory in scratch:
                shutil.rmtree(directory, ignore_errors=True)

        result = self._publish(InstallResult(version=version, path=saved.value, cache_hit=False))
        self._console.success(f"Successfully installed SurrealDB version: {version}")
        return Ok(result)

    def _unpack(
        self, target: Path, tokens: PlatformTokens, extract_dir: Path
    ) -> Result[Path, ExtractError]:
        """Turn the downloaded asset into a directory ready for caching."""
        if tokens.os_token == "windows":
            # The Windows asset is the executable itself.
            directory = target.parent
            try:
                target.rename(directory / WINDOWS_EXECUTABLE)
            except OSError as e:
                return Err(ExtractError(archive=target, reason=f"Rename failed: {e}"))
            return Ok(directory)

        self._console.print(f"Extracting target: {target}", Style.DIM)
        extracted = self._extract(target, extract_dir)
        if isinstance(extracted, Err):
            return extracted
        target.unlink(missing_ok=True)
        return Ok(extracted.value.directory)

    def _publish(self, result: InstallResult) -> InstallResult:
        self._console.print(f'Adding surrealdb directory "{result.path}" to the path', Style.DIM)
        self._runner.add_path(result.path)
        self._runner.set_output(OUTPUT_VERSION, result.version)
        self._runner.set_output(OUTPUT_PATH, str(result.path))
        self._runner.set_output(OUTPUT_CACHE_HIT, result.cache_hit)
        return result
