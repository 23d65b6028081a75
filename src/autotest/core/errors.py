"""autotest error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Watch source
- 4xxx: Test runner
- 9xxx: Internal

Parsing problems (malformed event or coverage lines) never surface as
exceptions; they degrade to raw output or zero-valued records instead.
Build and test failures are run outcomes, not errors.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Watch source (3xxx)
    WATCH_ROOT_NOT_FOUND = 3001
    WATCH_REGISTRATION_FAILED = 3002

    # Runner (4xxx)
    RUNNER_START_FAILED = 4001
    RUNNER_TIMEOUT = 4002
    RUNNER_IO_ERROR = 4003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(slots=True)
class AutotestError(Exception):
    """Base error with structured context for logs and the console."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(AutotestError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class WatchError(AutotestError):
    """Watch source errors. Only fatal while the watch is being set up."""

    @classmethod
    def root_not_found(cls, path: str) -> "WatchError":
        return cls(
            code=ErrorCode.WATCH_ROOT_NOT_FOUND,
            message=f"Watch root is not a directory: {path}",
            details={"path": path},
        )

    @classmethod
    def registration_failed(cls, path: str, reason: str) -> "WatchError":
        return cls(
            code=ErrorCode.WATCH_REGISTRATION_FAILED,
            message=f"Could not watch {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class RunnerError(AutotestError):
    """The test runner could not be started or talked to.

    Terminal for the one run that hit it; the watch session carries on.
    """

    @classmethod
    def start_failed(cls, command: str, reason: str) -> "RunnerError":
        return cls(
            code=ErrorCode.RUNNER_START_FAILED,
            message=f"Could not start '{command}': {reason}",
            details={"command": command, "reason": reason},
        )

    @classmethod
    def timeout(cls, folder: str, timeout_sec: float) -> "RunnerError":
        return cls(
            code=ErrorCode.RUNNER_TIMEOUT,
            message=f"Tests in {folder} did not finish within {timeout_sec}s",
            retryable=True,
            details={"folder": folder, "timeout_sec": timeout_sec},
        )

    @classmethod
    def io_error(cls, folder: str, reason: str) -> "RunnerError":
        return cls(
            code=ErrorCode.RUNNER_IO_ERROR,
            message=f"Lost contact with test runner for {folder}: {reason}",
            retryable=True,
            details={"folder": folder, "reason": reason},
        )


class InternalError(AutotestError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
