"""Typed configuration for a setup run.

The installer reads its inputs the way a GitHub Action does (``INPUT_*``
environment variables plus the ``RUNNER_*`` / ``GITHUB_*`` runner variables),
but everything is collected once into an immutable ``SetupConfig`` that is
passed explicitly to the service. Nothing below the CLI reads ``os.environ``.
"""

from __future__ import annotations

import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

__all__ = [
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_VERSION",
    "INPUT_RETRY_COUNT",
    "INPUT_VERSION",
    "RetryBudget",
    "SetupConfig",
    "resolve_retry_count",
]

DEFAULT_VERSION = "latest"
DEFAULT_RETRY_COUNT = 3

# Action input names
INPUT_VERSION = "version"
INPUT_RETRY_COUNT = "retry-count"


def _input_env_names(name: str) -> tuple[str, ...]:
    # The runner upper-cases input names and replaces spaces only, so
    # "retry-count" arrives as INPUT_RETRY-COUNT. Accept the underscore form too.
    upper = name.replace(" ", "_").upper()
    return (f"INPUT_{upper}", f"INPUT_{upper.replace('-', '_')}")


def get_input(env: Mapping[str, str], name: str) -> str:
    """Return the trimmed value of an action input, or "" when unset."""
    for key in _input_env_names(name):
        value = env.get(key)
        if value is not None and value.strip():
            return value.strip()
    return ""


@dataclass(frozen=True, slots=True)
class RetryBudget:
    """Resolved retry budget.

    Attributes:
        value: Maximum number of rate-limit retries
        warning: Message to surface when the raw input was rejected
    """

    value: int
    warning: str | None = None


def _parse_integer(text: str) -> int | None:
    # "2", "2.0" and "2e0" are all the integer 2; "2.5", "inf" and "A" are not.
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if not number.is_integer():
        return None
    return int(number)


def resolve_retry_count(raw: str | None) -> RetryBudget:
    """Resolve the ``retry-count`` input into a positive retry budget.

    Empty input silently yields the default. Anything that is not a positive
    integer also yields the default, but carries a warning for the user.
    """
    text = (raw or "").strip()
    if not text:
        return RetryBudget(DEFAULT_RETRY_COUNT)

    value = _parse_integer(text)
    if value is None:
        return RetryBudget(
            DEFAULT_RETRY_COUNT,
            warning=(
                f"An invalid {INPUT_RETRY_COUNT} was passed, "
                f"defaulting to {DEFAULT_RETRY_COUNT}"
            ),
        )

    if value <= 0:
        return RetryBudget(
            DEFAULT_RETRY_COUNT,
            warning=(
                f"An invalid {INPUT_RETRY_COUNT} was passed, the value has to be "
                f"greater than 0, defaulting to {DEFAULT_RETRY_COUNT}"
            ),
        )

    return RetryBudget(value)


@dataclass(frozen=True, slots=True)
class SetupConfig:
    """Inputs and runner locations for one setup run.

    Attributes:
        version: Requested release ("latest" or a tag such as "v2.3.3")
        retry_count: Raw retry-count input, resolved by resolve_retry_count()
        temp_dir: Scratch directory for downloads and extraction
        tool_cache_dir: Root of the tool cache
        output_file: File receiving step outputs (GITHUB_OUTPUT), if any
        path_file: File receiving PATH additions (GITHUB_PATH), if any
    """

    temp_dir: Path
    tool_cache_dir: Path
    version: str = DEFAULT_VERSION
    retry_count: str = ""
    output_file: Path | None = None
    path_file: Path | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> SetupConfig:
        """Build a config from an environment mapping (usually ``os.environ``)."""
        temp_raw = env.get("RUNNER_TEMP", "").strip()
        temp_dir = Path(temp_raw) if temp_raw else Path(tempfile.gettempdir())

        cache_raw = env.get("RUNNER_TOOL_CACHE", "").strip()
        tool_cache_dir = Path(cache_raw) if cache_raw else temp_dir / "tool-cache"

        output_raw = env.get("GITHUB_OUTPUT", "").strip()
        path_raw = env.get("GITHUB_PATH", "").strip()

        return cls(
            temp_dir=temp_dir,
            tool_cache_dir=tool_cache_dir,
            version=get_input(env, INPUT_VERSION) or DEFAULT_VERSION,
            retry_count=get_input(env, INPUT_RETRY_COUNT),
            output_file=Path(output_raw) if output_raw else None,
            path_file=Path(path_raw) if path_raw else None,
        )

    def with_overrides(
        self,
        *,
        version: str | None = None,
        retry_count: str | None = None,
        temp_dir: Path | None = None,
        tool_cache_dir: Path | None = None,
    ) -> SetupConfig:
        """Return a copy with the given (non-None) fields replaced."""
        config = self
        if version is not None and version.strip():
            config = replace(config, version=version.strip())
        if retry_count is not None:
            config = replace(config, retry_count=retry_count)
        if temp_dir is not None:
            config = replace(config, temp_dir=temp_dir)
        if tool_cache_dir is not None:
            config = replace(config, tool_cache_dir=tool_cache_dir)
        return config
