from __future__ import annotations

from pathlib import Path

import typer

from setup_surrealdb import __version__
from setup_surrealdb.cli.context import build_context
from setup_surrealdb.core.errors import ErrorCode
from setup_surrealdb.output.console import Style
from setup_surrealdb.platform.detection import detect_arch
from setup_surrealdb.services.setup import SetupService
from setup_surrealdb.tools.cache import ToolCache
from setup_surrealdb.tools.http import RealHttpClient
from setup_surrealdb.tools.release import TOOL_NAME

app = typer.Typer(
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    about: bool = typer.Option(False, "--about", help="Show program version and exit."),
) -> None:
    if about:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    # Bare invocation behaves like the action: install from INPUT_* variables.
    if ctx.invoked_subcommand is None:
        install(version=None, retry_count=None, tool_cache=None, temp_dir=None, plain=False)


@app.command()
def install(
    version: str | None = typer.Option(
        None,
        "--version",
        "-v",
        help='Release to install: "latest" or a tag such as v2.3.3 (default: INPUT_VERSION or latest).',
    ),
    retry_count: str | None = typer.Option(
        None,
        "--retry-count",
        help="Rate-limit retries before giving up (default: INPUT_RETRY-COUNT or 3).",
    ),
    tool_cache: Path | None = typer.Option(
        None,
        "--tool-cache",
        help="Tool cache root (default: RUNNER_TOOL_CACHE).",
    ),
    temp_dir: Path | None = typer.Option(
        None,
        "--temp-dir",
        help="Scratch directory for downloads (default: RUNNER_TEMP).",
    ),
    plain: bool = typer.Option(False, "--plain", help="Emit GitHub workflow commands."),
) -> None:
    """Install SurrealDB into the tool cache and add it to PATH."""
    ctx = build_context(plain=plain)
    config = ctx.config.with_overrides(
        version=version,
        retry_count=retry_count,
        temp_dir=temp_dir,
        tool_cache_dir=tool_cache,
    )
    service = SetupService(
        config=config,
        http=RealHttpClient(),
        runner=ctx.runner,
        console=ctx.console,
    )
    if service.run() is None:
        raise typer.Exit(code=int(ctx.runner.exit_code))


@app.command()
def cached(
    tool_cache: Path | None = typer.Option(
        None,
        "--tool-cache",
        help="Tool cache root (default: RUNNER_TOOL_CACHE).",
    ),
) -> None:
    """List SurrealDB versions present in the tool cache."""
    ctx = build_context()
    root = tool_cache or ctx.config.tool_cache_dir
    cache = ToolCache(root, arch=str(detect_arch()))

    versions = cache.versions(TOOL_NAME)
    if not versions:
        ctx.console.print(f"no cached {TOOL_NAME} versions in {root}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.OK))

    for version in versions:
        ctx.console.print(f"{version}  {cache.find(TOOL_NAME, version)}")


def main() -> None:
    app()
