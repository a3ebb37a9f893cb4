"""Core types: results, exit codes and configuration."""

from .config import RetryBudget, SetupConfig, resolve_retry_count
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "RetryBudget",
    "SetupConfig",
    "resolve_retry_count",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
