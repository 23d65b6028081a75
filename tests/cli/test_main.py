"""Tests for the autotest command group and its commands."""

from __future__ import annotations

import stat
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from autotest import __version__
from autotest.cli.main import cli
from autotest.config.models import AutotestConfig
from autotest.core.errors import WatchError

runner = CliRunner()

FAKE_GO = f"""#!{sys.executable}
import os
import sys

if sys.argv[1:2] == ["test"]:
    print('{{"Action":"run","Package":"example.com/p","Test":"TestA"}}')
    if os.environ.get("FAKE_GO_FAIL"):
        print('{{"Action":"fail","Package":"example.com/p","Test":"TestA","Elapsed":0.2}}')
        sys.exit(1)
    print('{{"Action":"pass","Package":"example.com/p","Test":"TestA","Elapsed":0.2}}')
    sys.exit(0)
sys.exit(0)
"""


@pytest.fixture(autouse=True)
def no_global_config(tmp_path: Path) -> Iterator[None]:
    with patch("autotest.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"):
        yield


@pytest.fixture
def fake_go(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    script = tmp_path / "bin" / "go"
    script.parent.mkdir()
    script.write_text(FAKE_GO)
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    monkeypatch.setenv("AUTOTEST__RUNNER__GO_BINARY", str(script))
    monkeypatch.setenv("AUTOTEST__RUNNER__COVERAGE", "false")
    return script


@pytest.fixture
def package_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "pkg"
    folder.mkdir()
    (folder / "a.go").write_text("package p\n")
    return folder


class TestCliGroup:
    """Tests for the top-level group."""

    def test_version(self) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "watch" in result.output
        assert "run" in result.output


class TestRunCommand:
    """Tests for autotest run."""

    def test_passing_folder(self, fake_go: Path, package_dir: Path) -> None:
        result = runner.invoke(cli, ["run", str(package_dir)])

        assert result.exit_code == 0, result.output
        assert "TestA" in result.output

    def test_failing_folder_exits_nonzero(
        self, fake_go: Path, package_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FAKE_GO_FAIL", "1")

        result = runner.invoke(cli, ["run", str(package_dir)])

        assert result.exit_code == 1
        assert "FAIL" in result.output

    def test_missing_go_is_reported(
        self, package_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("AUTOTEST__RUNNER__GO_BINARY", str(package_dir / "no-go"))

        result = runner.invoke(cli, ["run", str(package_dir)])

        assert result.exit_code == 1
        assert "Could not run tests" in result.output

    def test_invalid_config_is_click_error(
        self, package_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("AUTOTEST__RUNNER__TIMEOUT_SEC", "-1")

        result = runner.invoke(cli, ["run", str(package_dir)])

        assert result.exit_code != 0
        assert "CONFIG_INVALID_VALUE" in result.output


class TestWatchCommand:
    """Tests for autotest watch, with the session itself stubbed out."""

    def test_options_reach_config(self, package_dir: Path) -> None:
        seen: dict[str, Any] = {}

        async def fake_run_watch(root: Path, config: AutotestConfig) -> None:
            seen["root"] = root
            seen["config"] = config

        with patch("autotest.daemon.lifecycle.run_watch", fake_run_watch):
            result = runner.invoke(
                cli, ["watch", str(package_dir), "--debounce-ms", "250", "--queue-depth", "7"]
            )

        assert result.exit_code == 0, result.output
        assert f"Monitoring folder {package_dir}" in result.output
        assert seen["root"] == package_dir
        assert seen["config"].watch.debounce_ms == 250
        assert seen["config"].watch.queue_depth == 7

    def test_watch_error_is_click_error(self, package_dir: Path) -> None:
        async def failing_run_watch(root: Path, config: AutotestConfig) -> None:
            raise WatchError.registration_failed(str(root), "too many watches")

        with patch("autotest.daemon.lifecycle.run_watch", failing_run_watch):
            result = runner.invoke(cli, ["watch", str(package_dir)])

        assert result.exit_code == 1
        assert "too many watches" in result.output

    def test_keyboard_interrupt_stops_cleanly(self, package_dir: Path) -> None:
        async def interrupted(root: Path, config: AutotestConfig) -> None:
            raise KeyboardInterrupt

        with patch("autotest.daemon.lifecycle.run_watch", interrupted):
            result = runner.invoke(cli, ["watch", str(package_dir)])

        assert result.exit_code == 0
        assert "Stopped" in result.output
