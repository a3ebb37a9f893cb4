from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from setup_surrealdb.core.config import SetupConfig
from setup_surrealdb.output.console import ActionsConsole, ConsoleProtocol, RichConsole
from setup_surrealdb.output.runner import GitHubRunner


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: SetupConfig
    console: ConsoleProtocol
    runner: GitHubRunner


def running_in_actions(env: Mapping[str, str]) -> bool:
    return env.get("GITHUB_ACTIONS", "").lower() == "true"


def build_context(
    *,
    plain: bool = False,
    env: Mapping[str, str] | None = None,
) -> CLIContext:
    environ = os.environ if env is None else env
    config = SetupConfig.from_env(environ)

    console: ConsoleProtocol
    if plain or running_in_actions(environ):
        console = ActionsConsole()
    else:
        console = RichConsole()

    runner = GitHubRunner(
        console=console,
        output_file=config.output_file,
        path_file=config.path_file,
    )
    return CLIContext(config=config, console=console, runner=runner)
