"""Tests for per-folder change debouncing."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

import pytest

from autotest.daemon.debouncer import Debouncer, resolve_folder
from autotest.testing.models import ChangeEvent, ChangeOperation

INTERVAL = 0.15


def write(path: Path) -> ChangeEvent:
    return ChangeEvent(path=str(path), operation=ChangeOperation.WRITE, timestamp=time.time())


@pytest.fixture
def pkg(tmp_path: Path) -> Path:
    folder = tmp_path / "pkg"
    folder.mkdir()
    (folder / "a.go").write_text("package pkg\n")
    return folder


class TestResolveFolder:
    """Tests for resolve_folder."""

    def test_source_file_resolves_to_parent(self, pkg: Path) -> None:
        assert resolve_folder(str(pkg / "a.go")) == pkg

    def test_non_source_extension_is_ignored(self, pkg: Path) -> None:
        assert resolve_folder(str(pkg / "README.md")) is None

    def test_directory_is_ignored(self, tmp_path: Path) -> None:
        folder = tmp_path / "looks.go"
        folder.mkdir()

        assert resolve_folder(str(folder)) is None

    def test_move_uses_new_path(self, tmp_path: Path, pkg: Path) -> None:
        old = tmp_path / "old" / "x.go"

        assert resolve_folder(f"{old} -> {pkg / 'x.go'}") == pkg

    def test_move_to_non_source_is_ignored(self, pkg: Path) -> None:
        assert resolve_folder(f"{pkg / 'a.go'} -> {pkg / 'a.go.bak'}") is None

    def test_relative_path_is_made_absolute(
        self, pkg: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(pkg.parent)

        assert resolve_folder("pkg/a.go") == pkg

    def test_custom_extensions(self, pkg: Path) -> None:
        assert resolve_folder(str(pkg / "t.tmpl"), {".go", ".tmpl"}) == pkg


class TestDebouncer:
    """Tests for Debouncer settle timing."""

    @pytest.mark.asyncio
    async def test_burst_emits_one_settle_after_quiet_period(self, pkg: Path) -> None:
        settled: asyncio.Queue[Path] = asyncio.Queue()
        debouncer = Debouncer(settled=settled, interval=INTERVAL)

        for _ in range(5):
            last_event = time.monotonic()
            debouncer.submit(write(pkg / "a.go"))
            await asyncio.sleep(INTERVAL / 3)

        folder = await asyncio.wait_for(settled.get(), timeout=2)
        emitted = time.monotonic()

        assert folder == pkg
        assert emitted - last_event >= INTERVAL
        await asyncio.sleep(INTERVAL * 2)
        assert settled.empty()
        assert debouncer.pending == []

    @pytest.mark.asyncio
    async def test_non_source_change_never_settles(self, pkg: Path) -> None:
        settled: asyncio.Queue[Path] = asyncio.Queue()
        debouncer = Debouncer(settled=settled, interval=INTERVAL)

        assert debouncer.submit(write(pkg / "notes.txt")) is None
        await asyncio.sleep(INTERVAL * 2)

        assert settled.empty()
        assert debouncer.pending == []

    @pytest.mark.asyncio
    async def test_folders_settle_independently(self, tmp_path: Path, pkg: Path) -> None:
        other = tmp_path / "other"
        other.mkdir()
        settled: asyncio.Queue[Path] = asyncio.Queue()
        debouncer = Debouncer(settled=settled, interval=INTERVAL)

        debouncer.submit(write(pkg / "a.go"))
        debouncer.submit(write(other / "b.go"))
        assert sorted(debouncer.pending) == sorted([pkg, other])

        got = {
            await asyncio.wait_for(settled.get(), timeout=2),
            await asyncio.wait_for(settled.get(), timeout=2),
        }
        assert got == {pkg, other}

    @pytest.mark.asyncio
    async def test_removed_folder_is_dropped(self, pkg: Path) -> None:
        settled: asyncio.Queue[Path] = asyncio.Queue()
        debouncer = Debouncer(settled=settled, interval=INTERVAL)

        debouncer.submit(write(pkg / "a.go"))
        (pkg / "a.go").unlink()
        pkg.rmdir()
        await asyncio.sleep(INTERVAL * 3)

        assert settled.empty()
        assert debouncer.pending == []

    @pytest.mark.asyncio
    async def test_full_queue_blocks_instead_of_dropping(self, tmp_path: Path) -> None:
        folders = []
        for name in ("a", "b"):
            folder = tmp_path / name
            folder.mkdir()
            folders.append(folder)
        settled: asyncio.Queue[Path] = asyncio.Queue(maxsize=1)
        debouncer = Debouncer(settled=settled, interval=0.05)

        for folder in folders:
            debouncer.submit(write(folder / "x.go"))
        await asyncio.sleep(0.3)

        assert settled.qsize() == 1
        first = settled.get_nowait()
        second = await asyncio.wait_for(settled.get(), timeout=2)
        assert {first, second} == set(folders)

    @pytest.mark.asyncio
    async def test_close_cancels_pending(self, pkg: Path) -> None:
        settled: asyncio.Queue[Path] = asyncio.Queue()
        debouncer = Debouncer(settled=settled, interval=INTERVAL)

        debouncer.submit(write(pkg / "a.go"))
        await debouncer.close()
        await asyncio.sleep(INTERVAL * 2)

        assert settled.empty()
        assert debouncer.pending == []
