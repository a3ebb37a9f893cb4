"""Process exit codes.

Every terminal failure of the installer maps to one of these codes so that
shell callers can tell a bad input from an unreachable release index.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User error (bad version tag, no such release)
    - 2: Environment error (unsupported OS or CPU)
    - 4: Network error (rate limit exhausted, unexpected HTTP status)
    - 5: I/O error (download, extraction or cache write failed)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
