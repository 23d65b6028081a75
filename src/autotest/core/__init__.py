"""Core module exports."""

from autotest.core.errors import (
    AutotestError,
    ConfigError,
    ErrorCode,
    InternalError,
    RunnerError,
    WatchError,
)
from autotest.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "AutotestError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "RunnerError",
    "WatchError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
