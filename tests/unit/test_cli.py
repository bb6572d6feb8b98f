"""Tests for the command line interface."""

import asyncio
from pathlib import Path

import pytest

from docsearch import config
from docsearch.cli import build_parser, main, run_index, run_serve
from docsearch.errors import ConfigurationError


class TestParser:
    """Test argument parsing."""

    def test_index_command(self) -> None:
        args = build_parser().parse_args(["index", "./docs"])

        assert args.command == "index"
        assert args.docs_path == Path("./docs")

    def test_serve_defaults(self) -> None:
        args = build_parser().parse_args(["serve"])

        assert args.docs_dir == config.DOCS_DIR
        assert args.host == config.HOST
        assert args.port == config.PORT

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


def test_index_missing_directory_fails(monkeypatch: pytest.MonkeyPatch, tmp_path: Path,
                                       capsys: pytest.CaptureFixture) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("docsearch.cli.configure_logging", lambda level=None: None)

    assert main(["index", str(tmp_path / "missing")]) == 1
    assert "Documents directory not found" in capsys.readouterr().err


class TestStartupValidation:
    """Invalid chunk budgets are rejected before any collection is opened."""

    @pytest.fixture(autouse=True)
    def invalid_overlap(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("docsearch.cli.configure_logging", lambda level=None: None)
        monkeypatch.setattr(config, "MAX_CHUNK_TOKENS", 800)
        monkeypatch.setattr(config, "OVERLAP_TOKENS", 900)

    def test_serve_fails_before_opening_index(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            asyncio.run(run_serve(tmp_path / "docs", "127.0.0.1", 0))

        assert not (tmp_path / "data").exists()

    def test_index_fails_before_opening_index(self, tmp_path: Path) -> None:
        (tmp_path / "docs").mkdir()

        with pytest.raises(ConfigurationError):
            asyncio.run(run_index(tmp_path / "docs"))

        assert not (tmp_path / "data").exists()

    def test_serve_command_exits_with_error(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["serve"]) == 1
        assert "must be less than chunk size" in capsys.readouterr().err
