"""Per-folder change debouncing.

Design:
- Every change event is classified to the folder that owns it; changes to
  non-source files and to directories themselves are dropped
- Each folder with recent changes has one pending timer task
- A new change for a pending folder slides its deadline forward
  (sliding window, not fixed window)
- When a deadline passes with no further change, the folder is emitted
  once onto the settle queue, unless it was deleted in the meantime
- A full settle queue blocks the expiring timer rather than dropping the
  settle, so bursts are throttled
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import threading
import time
from collections.abc import Collection
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from autotest.testing.models import ChangeEvent

logger = structlog.get_logger()

DEFAULT_DEBOUNCE_SEC = 0.8
DEFAULT_EXTENSIONS: frozenset[str] = frozenset({".go"})

# Watch sources report moves and renames as "old -> new"
_MOVE_SEPARATOR = "-> "


def resolve_folder(path: str, extensions: Collection[str] = DEFAULT_EXTENSIONS) -> Path | None:
    """Folder owning the changed file, or None if the change is irrelevant."""
    target = path
    separator = target.find(_MOVE_SEPARATOR)
    if separator != -1:
        target = target[separator + len(_MOVE_SEPARATOR) :]
    target = target.strip()
    if not target or os.path.splitext(target)[1] not in extensions:
        return None

    resolved = Path(os.path.abspath(target))
    if resolved.is_dir():
        return None
    return resolved.parent


@dataclass
class _PendingSettle:
    deadline: float
    task: asyncio.Task[None] | None = None


@dataclass
class Debouncer:
    """
    Collapses bursts of change events into one settle per folder.

    ``submit`` must be called from the event loop that owns ``settled``.
    The pending map is guarded by one lock, taken both on ingestion and
    by expiring timers.
    """

    settled: asyncio.Queue[Path]
    interval: float = DEFAULT_DEBOUNCE_SEC
    extensions: Collection[str] = DEFAULT_EXTENSIONS

    _pending: dict[Path, _PendingSettle] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    @property
    def pending(self) -> list[Path]:
        """Folders with a running timer."""
        with self._lock:
            return list(self._pending)

    def submit(self, event: ChangeEvent) -> Path | None:
        """Feed one change event. Returns the folder it was attributed to."""
        folder = resolve_folder(event.path, self.extensions)
        if folder is None:
            logger.debug("change_ignored", path=event.path, operation=event.operation.value)
            return None
        self.touch(folder)
        return folder

    def touch(self, folder: Path) -> None:
        """Start or slide the settle timer for ``folder``."""
        deadline = time.monotonic() + self.interval
        with self._lock:
            pending = self._pending.get(folder)
            if pending is not None:
                pending.deadline = deadline
                return
            pending = _PendingSettle(deadline=deadline)
            self._pending[folder] = pending
            pending.task = asyncio.get_running_loop().create_task(
                self._expire(folder, pending),
                name=f"autotest-debounce:{folder}",
            )

    async def _expire(self, folder: Path, pending: _PendingSettle) -> None:
        while True:
            with self._lock:
                remaining = pending.deadline - time.monotonic()
                if remaining <= 0:
                    if self._pending.get(folder) is pending:
                        del self._pending[folder]
                    break
            await asyncio.sleep(remaining)

        if not folder.is_dir():
            logger.debug("settle_dropped", folder=str(folder), reason="folder_removed")
            return

        logger.debug("settle_emitted", folder=str(folder))
        await self.settled.put(folder)

    async def close(self) -> None:
        """Cancel every pending timer without emitting."""
        with self._lock:
            tasks = [p.task for p in self._pending.values() if p.task is not None]
            self._pending.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
