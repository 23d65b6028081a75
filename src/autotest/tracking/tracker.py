"""Per-folder baseline tracking and coverage diffing.

The first run recorded for a folder becomes its baseline for the life
of the process. Every later clean run is reduced to the coverage entries
that moved relative to that baseline; build breaks and test failures
are always handed back whole.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

from autotest.testing.models import (
    Baselined,
    FolderState,
    FunctionCoverage,
    TestRunResult,
    Unseen,
)

logger = structlog.get_logger()


class ReadWriteLock:
    """Many concurrent readers or one exclusive writer.

    Waiting writers block new readers, so a steady stream of reads cannot
    starve a write. Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def coverage_diff(
    original: Iterable[FunctionCoverage],
    current: Iterable[FunctionCoverage],
) -> list[FunctionCoverage]:
    """Entries of ``current`` whose percent moved since ``original``.

    Functions are matched on (filename, function) and then on the exact
    line number. A function that is new, or whose line shifted, is not
    reported.
    """
    index: dict[tuple[str, str], set[tuple[int | None, float]]] = {}
    for item in original:
        index.setdefault((item.filename, item.function), set()).add(
            (item.line_number, item.percent)
        )

    changed: list[FunctionCoverage] = []
    for item in current:
        recorded = index.get((item.filename, item.function))
        if recorded and any(
            line == item.line_number and percent != item.percent for line, percent in recorded
        ):
            changed.append(item)
    return changed


def has_changes(result: TestRunResult | None) -> bool:
    """Whether a tracked result is worth showing."""
    if result is None:
        return False
    return (
        result.build_failure is not None
        or result.tests_failed
        or result.transport_error is not None
        or bool(result.coverage)
    )


class ResultTracker:
    """Baseline and last result per folder.

    Held by the pipeline and passed to the tracking step; safe to share
    across threads.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._folders: dict[Path, Baselined] = {}

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._folders)

    def state(self, folder: Path) -> FolderState:
        with self._lock.read():
            return self._folders.get(folder, Unseen())

    def folders(self) -> list[Path]:
        with self._lock.read():
            return list(self._folders)

    def track(self, result: TestRunResult) -> TestRunResult | None:
        """Record a run and return what should be shown for it.

        Returns None when the run only established the baseline. Otherwise
        returns either the result itself (build break, failed tests,
        runner error) or a derived result holding just the coverage that
        moved; an empty coverage list there means nothing changed.
        """
        if result.transport_error is not None:
            return result

        with self._lock.write():
            saved = self._folders.get(result.folder)
            if saved is None:
                if result.build_failure is not None:
                    logger.info("build_failed_before_baseline", folder=str(result.folder))
                    return result
                self._folders[result.folder] = Baselined(original=result, last=result)
            else:
                self._folders[result.folder] = Baselined(original=saved.original, last=result)

        if saved is None:
            logger.info(
                "baseline_established",
                folder=str(result.folder),
                tests=len(result.statuses),
                functions=len(result.coverage),
            )
            return None

        if not result.is_clean:
            return result

        return TestRunResult(
            folder=result.folder,
            statuses=result.statuses,
            coverage=tuple(coverage_diff(saved.original.coverage, result.coverage)),
        )
