"""Tests for the command-line interface."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentwizard.cli import create_parser, run_cli


class TestParser:
    """Tests for argument parsing."""

    def test_replay_arguments(self) -> None:
        """Test the replay subcommand options."""
        parsed = create_parser().parse_args(["-vv", "replay", "session.jsonl", "--delay", "0.5"])
        assert parsed.mode == "replay"
        assert parsed.file == Path("session.jsonl")
        assert parsed.delay == 0.5
        assert parsed.prompt == "replay"
        assert parsed.verbose == 2

    def test_run_arguments(self) -> None:
        """Test the run subcommand options."""
        parsed = create_parser().parse_args(["run", "Add a login page", "--resume", "s1", "--cwd", "/tmp"])
        assert parsed.mode == "run"
        assert parsed.prompt == "Add a login page"
        assert parsed.resume == "s1"
        assert parsed.cwd == Path("/tmp")

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test --version prints and exits."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--version"])
        assert "0.1.0" in capsys.readouterr().out


class TestRunCli:
    """Tests for run_cli exit codes."""

    @pytest.fixture(autouse=True)
    def quiet_logging(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AW_LOG", str(tmp_path / "aw.log"))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))

    def test_no_mode_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test running without a subcommand shows help and fails."""
        assert run_cli([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_missing_transcript(self, tmp_path: Path) -> None:
        """Test a missing replay file is reported as an error."""
        assert run_cli(["replay", str(tmp_path / "missing.jsonl")]) == 1
