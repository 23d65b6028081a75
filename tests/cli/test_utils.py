"""Tests for CLI utilities."""

from __future__ import annotations

from pathlib import Path

import click
import pytest

from autotest.cli.utils import resolve_root


class TestResolveRoot:
    """Tests for resolve_root function."""

    def test_returns_absolute_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "sub").mkdir()
        monkeypatch.chdir(tmp_path)

        assert resolve_root(Path("sub")) == tmp_path / "sub"

    def test_uses_cwd_when_none(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)

        assert resolve_root(None) == tmp_path

    def test_rejects_file(self, tmp_path: Path) -> None:
        path = tmp_path / "main.go"
        path.write_text("package main\n")

        with pytest.raises(click.ClickException) as exc_info:
            resolve_root(path)

        assert "Not a directory" in exc_info.value.message
