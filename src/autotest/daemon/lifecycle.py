"""Watch session lifecycle management."""

from __future__ import annotations

import asyncio
import contextlib
import signal
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from autotest.config.models import AutotestConfig
from autotest.core.presenter import ConsolePresenter, Presenter
from autotest.daemon.debouncer import Debouncer
from autotest.daemon.pipeline import Pipeline
from autotest.daemon.watcher import FolderWatcher, discover_source_folders
from autotest.testing.runner import GoTestRunner, TestRunner

logger = structlog.get_logger()

STOP_TIMEOUT_SEC = 5.0


@dataclass
class WatchSession:
    """
    Orchestrates the watch components.

    Components:
    - FolderWatcher: Async filesystem monitoring
    - Debouncer: Per-folder settle timers
    - Pipeline: Test runs, tracking and printing
    """

    root: Path
    config: AutotestConfig
    runner: TestRunner
    presenter: Presenter

    pipeline: Pipeline = field(init=False)
    debouncer: Debouncer = field(init=False)
    watcher: FolderWatcher = field(init=False)

    def __post_init__(self) -> None:
        watch = self.config.watch
        self.pipeline = Pipeline(
            runner=self.runner,
            presenter=self.presenter,
            queue_depth=watch.queue_depth,
        )
        self.debouncer = Debouncer(
            settled=self.pipeline.settled,
            interval=watch.debounce_sec,
            extensions=frozenset(watch.extensions),
        )
        self.watcher = FolderWatcher(
            root=self.root,
            on_change=self.debouncer.submit,
            extensions=frozenset(watch.extensions),
            excluded_dirs=frozenset(watch.excluded_dirs),
        )

    async def start(self) -> list[Path]:
        """Start watching and queue one run for every source folder.

        Raises:
            WatchError: If the watch could not be registered.
        """
        logger.info("watch_session_starting", root=str(self.root))
        watch = self.config.watch
        folders = discover_source_folders(self.root, watch.extensions, watch.excluded_dirs)

        await self.watcher.start()
        self.pipeline.start()
        await self.pipeline.seed(folders)

        logger.info("watch_session_started", root=str(self.root), folders=len(folders))
        return folders

    async def stop(self) -> None:
        """Stop all components gracefully."""
        logger.info("watch_session_stopping")
        try:
            async with asyncio.timeout(STOP_TIMEOUT_SEC):
                # No new events, then no new settles, then drain.
                await self.watcher.stop()
                await self.debouncer.close()
                await self.pipeline.stop()
        except TimeoutError:
            logger.warning(
                "watch_session_stop_timeout",
                message=f"Shutdown timed out after {STOP_TIMEOUT_SEC}s",
            )
        logger.info("watch_session_stopped")


async def run_watch(
    root: Path,
    config: AutotestConfig,
    *,
    runner: TestRunner | None = None,
    presenter: Presenter | None = None,
) -> None:
    """Watch ``root`` until SIGINT or SIGTERM.

    The first signal starts a graceful stop. Signal handlers are removed
    before stopping, so a second Ctrl-C interrupts immediately.
    """
    go_runner = GoTestRunner.from_config(config.runner) if runner is None else None
    session = WatchSession(
        root=root,
        config=config,
        runner=runner or go_runner,
        presenter=presenter or ConsolePresenter(),
    )

    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()

    def signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_requested.set()

    signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, signal_handler)

    try:
        await session.start()
        await stop_requested.wait()
    finally:
        for sig in signals:
            with contextlib.suppress(NotImplementedError):
                loop.remove_signal_handler(sig)
        await session.stop()
        if go_runner is not None:
            go_runner.close()
