"""Config module exports."""

from autotest.config.loader import load_config
from autotest.config.models import (
    AutotestConfig,
    LoggingConfig,
    LogOutputConfig,
    RunnerConfig,
    WatchConfig,
)

__all__ = [
    "load_config",
    "AutotestConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "RunnerConfig",
    "WatchConfig",
]
