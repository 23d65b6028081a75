"""Test execution and output parsing: go test events, coverage, run results."""

from autotest.testing.coverage import parse_coverage_line, parse_coverage_report
from autotest.testing.events import (
    group_events,
    parse_event_line,
    parse_event_stream,
    parse_test_events,
)
from autotest.testing.models import (
    ChangeEvent,
    ChangeOperation,
    ExitStatus,
    FunctionCoverage,
    RunOutput,
    TestEvent,
    TestRunResult,
    TestStatus,
)
from autotest.testing.results import build_run_result
from autotest.testing.runner import GoTestRunner, TestRunner

__all__ = [
    "ChangeEvent",
    "ChangeOperation",
    "ExitStatus",
    "FunctionCoverage",
    "GoTestRunner",
    "RunOutput",
    "TestEvent",
    "TestRunResult",
    "TestRunner",
    "TestStatus",
    "build_run_result",
    "group_events",
    "parse_coverage_line",
    "parse_coverage_report",
    "parse_event_line",
    "parse_event_stream",
    "parse_test_events",
]
