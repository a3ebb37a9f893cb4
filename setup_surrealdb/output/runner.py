"""Step outputs and PATH publication for the hosting runner.

On GitHub Actions, step outputs are appended to the file named by
``GITHUB_OUTPUT`` and directories are added to later steps' PATH through
``GITHUB_PATH``. Outside a runner both files are absent and only the current
process PATH is updated.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from setup_surrealdb.core.errors import ErrorCode
from setup_surrealdb.output.console import ConsoleProtocol
from setup_surrealdb.platform.files import append_text

__all__ = [
    "GitHubRunner",
    "MockRunner",
    "RunnerProtocol",
    "format_output_value",
]


def format_output_value(value: object) -> str:
    """Render an output value; booleans become "true"/"false"."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RunnerProtocol(Protocol):
    """Where a setup run publishes its results."""

    def set_output(self, name: str, value: object) -> None: ...

    def add_path(self, path: Path) -> None: ...

    def set_failed(self, message: str, code: ErrorCode = ErrorCode.USER_ERROR) -> None: ...


class GitHubRunner:
    """Runner backed by the GitHub Actions environment files.

    Args:
        console: Receives the failure message
        output_file: GITHUB_OUTPUT file; outputs are echoed as debug lines when None
        path_file: GITHUB_PATH file, if any
        environ: Environment whose PATH is updated (defaults to os.environ)
    """

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        output_file: Path | None = None,
        path_file: Path | None = None,
        environ: MutableMapping[str, str] | None = None,
    ) -> None:
        self._console = console
        self._output_file = output_file
        self._path_file = path_file
        self._environ = os.environ if environ is None else environ
        self.exit_code: ErrorCode = ErrorCode.OK

    def set_output(self, name: str, value: object) -> None:
        text = format_output_value(value)
        if self._output_file is None:
            self._console.print(f"output {name}={text}")
            return

        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        if delimiter in name or delimiter in text:
            raise ValueError(f"Unexpected delimiter in output {name!r}")
        append_text(self._output_file, f"{name}<<{delimiter}\n{text}\n{delimiter}\n")

    def add_path(self, path: Path) -> None:
        if self._path_file is not None:
            append_text(self._path_file, f"{path}\n")
        current = self._environ.get("PATH", "")
        self._environ["PATH"] = f"{path}{os.pathsep}{current}" if current else str(path)

    def set_failed(self, message: str, code: ErrorCode = ErrorCode.USER_ERROR) -> None:
        self.exit_code = code
        self._console.error(message)


def _empty_outputs() -> dict[str, str]:
    return {}


def _empty_paths() -> list[Path]:
    return []


def _empty_failures() -> list[tuple[str, ErrorCode]]:
    return []


@dataclass
class MockRunner:
    """Runner that records everything for tests."""

    outputs: dict[str, str] = field(default_factory=_empty_outputs)
    paths: list[Path] = field(default_factory=_empty_paths)
    failures: list[tuple[str, ErrorCode]] = field(default_factory=_empty_failures)

    def set_output(self, name: str, value: object) -> None:
        self.outputs[name] = format_output_value(value)

    def add_path(self, path: Path) -> None:
        self.paths.append(path)

    def set_failed(self, message: str, code: ErrorCode = ErrorCode.USER_ERROR) -> None:
        self.failures.append((message, code))

    @property
    def failed(self) -> bool:
        return bool(self.failures)
