"""Folder watcher using watchfiles for async filesystem monitoring.

Design:
- Python walks the tree, skipping hidden and excluded directories
- Builds an explicit list of directories to watch
- Passes them to awatch with recursive=False (one inotify watch per dir)
- Reacts to new directory creation by restarting awatch, announcing any
  source files that landed in the new directory before it was watched
- Deletions are not change events; a folder that vanishes is dropped by
  the debouncer when it settles
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import time
from collections.abc import Callable, Collection
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from watchfiles import Change, awatch

from autotest.core.errors import WatchError
from autotest.testing.models import ChangeEvent, ChangeOperation

logger = structlog.get_logger()

DEFAULT_EXCLUDED_DIRS: frozenset[str] = frozenset({"node_modules", "vendor"})

_CHANGE_OPERATIONS: dict[Change, ChangeOperation] = {
    Change.added: ChangeOperation.CREATE,
    Change.modified: ChangeOperation.WRITE,
}


def _should_prune(name: str, excluded: Collection[str]) -> bool:
    return name.startswith(".") or name in excluded


def _has_source_file(filenames: list[str], extensions: Collection[str]) -> bool:
    return any(os.path.splitext(name)[1] in extensions for name in filenames)


def collect_watch_dirs(root: Path, excluded: Collection[str] = DEFAULT_EXCLUDED_DIRS) -> list[Path]:
    """Walk the tree and collect every directory to watch. ``root`` is always included."""
    dirs: list[Path] = [root]
    try:
        for dirpath, dirnames, _filenames in os.walk(root):
            dirnames[:] = [d for d in dirnames if not _should_prune(d, excluded)]
            for d in dirnames:
                dirs.append(Path(dirpath) / d)
    except OSError:
        pass
    return dirs


def discover_source_folders(
    root: Path,
    extensions: Collection[str],
    excluded: Collection[str] = DEFAULT_EXCLUDED_DIRS,
) -> list[Path]:
    """Folders under ``root`` that directly contain at least one source file.

    Used to seed a run for every package at startup.
    """
    folders: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not _should_prune(d, excluded))
        if _has_source_file(filenames, extensions):
            folders.append(Path(dirpath))
    return folders


@dataclass
class FolderWatcher:
    """
    Async watcher that reports raw change events for a directory tree.

    Change events are handed to ``on_change`` one at a time, in the order
    watchfiles reports them. Startup problems raise WatchError; errors
    after startup are logged and the watch is re-established after a
    backoff.
    """

    root: Path
    on_change: Callable[[ChangeEvent], object]
    extensions: Collection[str] = frozenset({".go"})
    excluded_dirs: Collection[str] = DEFAULT_EXCLUDED_DIRS
    retry_backoff_sec: float = 1.0

    _watch_task: asyncio.Task[None] | None = field(default=None, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _watched_dirs: set[Path] = field(default_factory=set, init=False)

    @property
    def watched_dirs(self) -> set[Path]:
        return set(self._watched_dirs)

    async def start(self) -> None:
        """Register the watch.

        Raises:
            WatchError: If the root is missing or cannot be read.
        """
        if self._watch_task is not None:
            return

        if not self.root.is_dir():
            raise WatchError.root_not_found(str(self.root))
        try:
            with os.scandir(self.root):
                pass
        except OSError as e:
            raise WatchError.registration_failed(str(self.root), str(e)) from e

        self._watched_dirs = set(collect_watch_dirs(self.root, self.excluded_dirs))
        self._stop_event.clear()
        self._watch_task = asyncio.create_task(self._watch_loop())
        logger.info(
            "folder_watcher_started",
            root=str(self.root),
            dirs=len(self._watched_dirs),
        )

    async def stop(self) -> None:
        """Stop watching for changes."""
        self._stop_event.set()

        if self._watch_task is not None:
            self._watch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._watch_task, timeout=2.0)
            self._watch_task = None

        logger.info("folder_watcher_stopped")

    async def _watch_loop(self) -> None:
        """Run awatch over the collected directories, restarting on new ones."""
        try:
            while not self._stop_event.is_set():
                watch_dirs = collect_watch_dirs(self.root, self.excluded_dirs)
                self._watched_dirs = set(watch_dirs)
                logger.debug("watch_dirs_collected", count=len(watch_dirs))

                try:
                    async for changes in awatch(
                        *watch_dirs,
                        recursive=False,
                        step=50,
                        debounce=400,
                        rust_timeout=10_000,
                        stop_event=self._stop_event,
                        ignore_permission_denied=True,
                    ):
                        if self._handle_changes(changes):
                            logger.info("watcher_restart_requested", reason="new_directories")
                            break
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    if self._stop_event.is_set():
                        return
                    logger.error("watcher_error", error=str(e))
                    await asyncio.sleep(self.retry_backoff_sec)
        except asyncio.CancelledError:
            pass

    def _handle_changes(self, changes: set[tuple[Change, str]]) -> bool:
        """Forward changes to the callback.

        Returns True if a watcher restart is needed (new directories detected).
        """
        needs_restart = False
        now = time.time()
        for change_type, path_str in sorted(changes, key=lambda c: c[1]):
            path = Path(path_str)
            if change_type == Change.added and path.is_dir():
                is_new = path not in self._watched_dirs
                if is_new and not _should_prune(path.name, self.excluded_dirs):
                    logger.info("new_directory_detected", path=path_str)
                    self._announce_directory(path, now)
                    needs_restart = True
                continue

            operation = _CHANGE_OPERATIONS.get(change_type)
            if operation is None:
                continue
            logger.debug("change_detected", path=path_str, operation=operation.value)
            self.on_change(ChangeEvent(path=path_str, operation=operation, timestamp=now))
        return needs_restart

    def _announce_directory(self, directory: Path, timestamp: float) -> None:
        """Report source files already present in a directory that was not yet watched."""
        for folder in discover_source_folders(directory, self.extensions, self.excluded_dirs):
            with contextlib.suppress(OSError), os.scandir(folder) as entries:
                for entry in entries:
                    if entry.is_file() and os.path.splitext(entry.name)[1] in self.extensions:
                        self.on_change(
                            ChangeEvent(
                                path=entry.path,
                                operation=ChangeOperation.CREATE,
                                timestamp=timestamp,
                            )
                        )
