"""Settle → run → track → print pipeline.

Design:
- A dispatch task takes settled folders off a bounded queue and starts
  one independent run task per folder; runs of different folders, and
  repeated runs of the same folder, may overlap
- Every run ends in exactly one TestRunResult on the bounded results
  queue, including runs whose runner could not be reached
- A single tracking task feeds results through the ResultTracker and
  forwards only those worth showing
- A single print task hands them to the presenter, so output from
  concurrent runs never interleaves
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from autotest.core.errors import InternalError, RunnerError
from autotest.core.logging import clear_run_id, set_run_id
from autotest.core.presenter import Presenter
from autotest.testing.models import TestRunResult
from autotest.testing.results import build_run_result, transport_failure
from autotest.testing.runner import TestRunner
from autotest.tracking.tracker import ResultTracker, has_changes

logger = structlog.get_logger()

DEFAULT_QUEUE_DEPTH = 100
DEFAULT_DRAIN_TIMEOUT_SEC = 2.0


async def run_once(runner: TestRunner, folder: Path) -> TestRunResult:
    """Run one folder's tests and parse the outcome. Never raises for runner failures."""
    log = logger.bind(folder=str(folder))
    log.info("run_started")
    start = time.monotonic()
    try:
        result = build_run_result(await runner.run(folder))
    except RunnerError as e:
        log.warning("runner_failed", code=e.code.name, error=e.message, retryable=e.retryable)
        result = transport_failure(folder, e.message)
    except Exception as e:
        log.exception("run_crashed")
        result = transport_failure(folder, InternalError.unexpected(str(e)).message)

    log.info(
        "run_finished",
        duration_ms=round((time.monotonic() - start) * 1000),
        build_failed=result.build_failure is not None,
        tests_failed=result.tests_failed,
        tests=len(result.statuses),
        functions=len(result.coverage),
    )
    return result


@dataclass
class Pipeline:
    """
    Moves settled folders through test runs to the presenter.

    Producers put folders on ``settled``; everything downstream is owned
    here. Call ``start`` before seeding or feeding the queue.
    """

    runner: TestRunner
    presenter: Presenter
    tracker: ResultTracker = field(default_factory=ResultTracker)
    queue_depth: int = DEFAULT_QUEUE_DEPTH
    drain_timeout_sec: float = DEFAULT_DRAIN_TIMEOUT_SEC

    settled: asyncio.Queue[Path] = field(init=False)
    _results: asyncio.Queue[TestRunResult] = field(init=False)
    _printable: asyncio.Queue[TestRunResult] = field(init=False)
    _runs: set[asyncio.Task[None]] = field(default_factory=set, init=False)
    _dispatch_task: asyncio.Task[None] | None = field(default=None, init=False)
    _tracking_task: asyncio.Task[None] | None = field(default=None, init=False)
    _print_task: asyncio.Task[None] | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.settled = asyncio.Queue(maxsize=self.queue_depth)
        self._results = asyncio.Queue(maxsize=self.queue_depth)
        self._printable = asyncio.Queue(maxsize=self.queue_depth)

    @property
    def active_runs(self) -> int:
        return len(self._runs)

    def start(self) -> None:
        """Start the dispatch, tracking and print tasks."""
        if self._dispatch_task is not None:
            return
        self._dispatch_task = asyncio.create_task(self._dispatch_loop(), name="autotest-dispatch")
        self._tracking_task = asyncio.create_task(self._tracking_loop(), name="autotest-tracking")
        self._print_task = asyncio.create_task(self._print_loop(), name="autotest-print")
        logger.debug("pipeline_started", queue_depth=self.queue_depth)

    async def seed(self, folders: Iterable[Path]) -> int:
        """Queue an initial run for each folder, waiting for room as needed."""
        count = 0
        for folder in folders:
            await self.settled.put(folder)
            count += 1
        logger.info("pipeline_seeded", folders=count)
        return count

    async def stop(self) -> None:
        """Stop accepting settles, then drain queued results best-effort.

        Runs already in flight are left to finish on their own.
        """
        await _cancel(self._dispatch_task)
        self._dispatch_task = None

        try:
            async with asyncio.timeout(self.drain_timeout_sec):
                await self._results.join()
                await self._printable.join()
        except TimeoutError:
            logger.warning(
                "pipeline_drain_timeout",
                pending_results=self._results.qsize(),
                pending_prints=self._printable.qsize(),
                active_runs=len(self._runs),
            )

        await _cancel(self._tracking_task)
        await _cancel(self._print_task)
        self._tracking_task = None
        self._print_task = None
        logger.debug("pipeline_stopped", active_runs=len(self._runs))

    def launch(self, folder: Path) -> asyncio.Task[None]:
        """Start one run for ``folder`` without waiting for it."""
        task = asyncio.create_task(self._run(folder), name=f"autotest-run:{folder}")
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        return task

    async def _run(self, folder: Path) -> None:
        set_run_id()
        try:
            result = await run_once(self.runner, folder)
            await self._results.put(result)
        finally:
            clear_run_id()

    async def _dispatch_loop(self) -> None:
        while True:
            folder = await self.settled.get()
            try:
                self.launch(folder)
            finally:
                self.settled.task_done()

    async def _tracking_loop(self) -> None:
        while True:
            result = await self._results.get()
            try:
                await self._route(result)
            finally:
                self._results.task_done()

    async def _route(self, result: TestRunResult) -> None:
        if result.transport_error is not None:
            await self._printable.put(result)
            return

        shown = self.tracker.track(result)
        if shown is None:
            return
        if has_changes(shown):
            await self._printable.put(shown)
        else:
            logger.info("unchanged", folder=str(result.folder))

    async def _print_loop(self) -> None:
        while True:
            result = await self._printable.get()
            try:
                self.presenter.present(result)
            except Exception:
                logger.exception("present_failed", folder=str(result.folder))
            finally:
                self._printable.task_done()


async def _cancel(task: asyncio.Task[None] | None) -> None:
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
