"""Console rendering of test run results.

One result is rendered as a block: a rule naming the folder, then either
the compile errors, the runner error, or a test table and a coverage
table. When tests pass, fast tests are hidden and fully covered functions
are never listed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from autotest.testing.events import parse_event_line
from autotest.testing.models import FunctionCoverage, TestRunResult, TestStatus

SLOW_TEST_SEC = 0.1
VERY_SLOW_TEST_SEC = 0.5

_BUILD_ERROR = re.compile(r"(^.*?):(\d*):(\d*):(.*)$")
_SKIPPED_BUILD_LINES = ("#", "FAIL")

_RESULT_LABELS = {
    "pass": Text("PASS", style="green"),
    "fail": Text("FAIL", style="red"),
    "skip": Text("SKIPPED", style="yellow"),
}


class Presenter(Protocol):
    """Receives every result that made it through tracking."""

    def present(self, result: TestRunResult) -> None: ...


@dataclass(frozen=True, slots=True)
class BuildError:
    """One compiler diagnostic extracted from build output."""

    path: str
    line: str
    column: str
    message: str


def parse_build_failure(output: bytes) -> list[BuildError]:
    """Extract ``file:line:col: message`` diagnostics from build output.

    Output may be plain text or ``go test -json`` build-output events.
    """
    errors: list[BuildError] = []
    for raw in output.splitlines():
        event = parse_event_line(raw)
        if event is None:
            continue
        line = event.output.rstrip("\r\n")
        if line.startswith(_SKIPPED_BUILD_LINES):
            continue
        match = _BUILD_ERROR.match(line)
        if match is None:
            continue
        path_info, line_no, column, message = match.groups()
        errors.append(
            BuildError(
                path=path_info.rpartition(":")[2].strip(),
                line=line_no,
                column=column,
                message=message.strip(),
            )
        )
    return errors


def short_package(package: str) -> str:
    """Drop the host and owner segments of an import path."""
    parts = package.split("/")
    if len(parts) >= 3:
        return "/".join(parts[2:])
    return package


def is_shown(status: TestStatus) -> bool:
    """Whether a test row is listed when the run passed."""
    return status.test == "" or status.elapsed > SLOW_TEST_SEC


def _elapsed_text(elapsed: float) -> Text:
    style = ""
    if elapsed > VERY_SLOW_TEST_SEC:
        style = "red"
    elif elapsed > SLOW_TEST_SEC:
        style = "yellow"
    return Text(f"{elapsed:.2f}s", style=style)


def _percent_text(percent: float) -> Text:
    if percent == 100:
        style = "green"
    elif percent > 75:
        style = "yellow"
    else:
        style = "bright_red"
    return Text(f"{percent:.1f}%", style=style)


class ConsolePresenter:
    """Renders results with rich."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)

    def present(self, result: TestRunResult) -> None:
        self.console.print(Rule(str(result.folder), style="cyan"))

        if result.transport_error is not None:
            reason = escape(result.transport_error)
            self.console.print(f"[red]✗[/red] Could not run tests: {reason}")
            return
        if result.build_failure is not None:
            self._print_build_failure(result.build_failure)
            return

        self._print_statuses(result)
        self._print_coverage(result.coverage)

    def _print_build_failure(self, output: bytes) -> None:
        errors = parse_build_failure(output)
        if not errors:
            self.console.print("[red]✗[/red] Build failed", highlight=False)
            self.console.print(Text(output.decode(errors="replace").rstrip(), style="dim"))
            return
        for error in errors:
            self.console.print(
                f"Error in [bold]{escape(error.path)}[/bold] at line [blue]{error.line}[/blue], "
                f"column [blue]{error.column}[/blue]",
                highlight=False,
            )
            self.console.print(Text(error.message, style="red"))

    def _print_statuses(self, result: TestRunResult) -> None:
        rows = [s for s in result.statuses if result.tests_failed or is_shown(s)]
        if not rows:
            return

        table = Table(title="Test Results", title_justify="left")
        table.add_column("Time", justify="right")
        table.add_column("Package")
        table.add_column("Test")
        table.add_column("Result")
        for status in rows:
            name = Text(status.test or "[package]")
            if status.output:
                name.append("\n" + status.output.rstrip(), style="dim")
            table.add_row(
                _elapsed_text(status.elapsed),
                Text(short_package(status.package)),
                name,
                _RESULT_LABELS.get(status.result or "", Text("")),
            )
        self.console.print(table)

    def _print_coverage(self, coverage: tuple[FunctionCoverage, ...]) -> None:
        rows = [c for c in coverage if c.percent != 100]
        if not rows:
            return

        table = Table(title="Coverage", title_justify="left")
        table.add_column("File")
        table.add_column("Line", justify="right")
        table.add_column("Function")
        table.add_column("Coverage", justify="right")
        for item in rows:
            table.add_row(
                Text(item.filename),
                "" if item.line_number is None else str(item.line_number),
                Text(item.function),
                _percent_text(item.percent),
            )
        self.console.print(table)
