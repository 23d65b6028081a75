"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (AUTOTEST__SECTION__KEY)
3. Repo YAML (<root>/.autotest.yaml)
4. Global YAML (~/.config/autotest/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    AUTOTEST__<SECTION>__<KEY>=<VALUE>

Examples:
    AUTOTEST__LOGGING__LEVEL=DEBUG
    AUTOTEST__WATCH__DEBOUNCE_MS=500
    AUTOTEST__RUNNER__TIMEOUT_SEC=120
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        AUTOTEST__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every raw change event.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class WatchConfig(BaseModel):
    """Change detection and scheduling.

    Env vars:
        AUTOTEST__WATCH__DEBOUNCE_MS: Quiet period before a folder settles
        AUTOTEST__WATCH__QUEUE_DEPTH: Capacity of the settle and result queues
    """

    debounce_ms: int = Field(
        default=800,
        description="A folder settles once no change has arrived for this long. "
        "Lower values may start runs while an editor is still saving.",
    )
    queue_depth: int = Field(
        default=100,
        description="Bounded queue capacity. When full, settling folders wait for room.",
    )
    extensions: list[str] = Field(
        default_factory=lambda: [".go"],
        description="Source file extensions whose changes trigger a test run.",
    )
    excluded_dirs: list[str] = Field(
        default_factory=lambda: ["node_modules", "vendor"],
        description="Directory names never watched. Hidden directories are always skipped.",
    )

    @field_validator("debounce_ms", "queue_depth")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [ext if ext.startswith(".") else f".{ext}" for ext in v]

    @property
    def debounce_sec(self) -> float:
        return self.debounce_ms / 1000


class RunnerConfig(BaseModel):
    """Go test runner configuration.

    Env vars:
        AUTOTEST__RUNNER__GO_BINARY: go executable to invoke
        AUTOTEST__RUNNER__TIMEOUT_SEC: Per-run timeout
    """

    go_binary: str = Field(default="go", description="go executable (name or path).")
    timeout_sec: float = Field(
        default=300.0,
        description="Per-run timeout. A run that exceeds it is reported as a runner error.",
    )
    extra_args: list[str] = Field(
        default_factory=list,
        description="Extra arguments passed to 'go test' (e.g. -race).",
    )
    coverage: bool = Field(default=True, description="Collect per-function coverage.")

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v


class AutotestConfig(BaseModel):
    """Root configuration for autotest."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
