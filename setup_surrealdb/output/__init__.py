"""Output abstraction layer."""

from .console import (
    ActionsConsole,
    ConsoleProtocol,
    MockConsole,
    RichConsole,
    Style,
)
from .runner import GitHubRunner, MockRunner, RunnerProtocol

__all__ = [
    "ActionsConsole",
    "ConsoleProtocol",
    "GitHubRunner",
    "MockConsole",
    "MockRunner",
    "RichConsole",
    "RunnerProtocol",
    "Style",
]
