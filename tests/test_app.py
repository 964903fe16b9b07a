"""Tests for pitlane.app — CLI dispatch and logging setup."""

import logging
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from pitlane.app import _build_parser, configure_logging, main
from pitlane.config import Config


class TestParser:
    def test_setup_with_cwd(self):
        args = _build_parser().parse_args(["setup", "--cwd", "/tmp/app"])
        assert args.command == "setup"
        assert args.cwd == "/tmp/app"

    def test_no_command(self):
        assert _build_parser().parse_args([]).command is None

    def test_global_cwd_without_command(self):
        args = _build_parser().parse_args(["--cwd", "/tmp/app"])
        assert args.command is None
        assert args.cwd == "/tmp/app"

    def test_global_cwd_before_setup(self):
        args = _build_parser().parse_args(["--cwd", "/tmp/app", "setup"])
        assert args.command == "setup"
        assert args.cwd == "/tmp/app"

    def test_cwd_defaults_to_none(self):
        assert _build_parser().parse_args(["setup"]).cwd is None

    def test_unknown_command_shows_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["launch"])
        assert exc_info.value.code == 2
        assert "Usage: pitlane" in capsys.readouterr().out


class TestMain:
    @pytest.fixture(autouse=True)
    def _isolated_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PITLANE_CONFIG_DIR", str(tmp_path / "cfg"))
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("LOG_DIR", raising=False)
        monkeypatch.delenv("PITLANE_BASE_URL", raising=False)

    def test_default_runs_setup(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["pitlane"])
        with patch("pitlane.setup.setup_command") as mock_setup, \
             patch("pitlane.app.configure_logging"):
            main()
        mock_setup.assert_called_once()

    def test_global_cwd_runs_setup_in_that_directory(self, monkeypatch, tmp_path):
        monkeypatch.setattr(sys, "argv", ["pitlane", "--cwd", str(tmp_path)])
        with patch("pitlane.setup.setup_command") as mock_setup, \
             patch("pitlane.app.configure_logging"):
            main()
        args = mock_setup.call_args[0][0]
        assert args.cwd == str(tmp_path)

    def test_config_built_once_and_passed_through(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["pitlane", "setup"])
        config = Config(stripe_bin="stripe-beta")
        with patch("pitlane.app.Config.from_env", return_value=config) as mock_from_env, \
             patch("pitlane.setup.setup_command") as mock_setup, \
             patch("pitlane.app.configure_logging"):
            main()
        mock_from_env.assert_called_once()
        assert mock_setup.call_args[0][1] is config

    def test_check_dispatch(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["pitlane", "check"])
        with patch("pitlane.setup.check_command") as mock_check, \
             patch("pitlane.app.configure_logging"):
            main()
        mock_check.assert_called_once()

    def test_help(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["pitlane", "help"])
        with patch("pitlane.setup.setup_command") as mock_setup:
            main()
        mock_setup.assert_not_called()
        assert "pitlane setup" in capsys.readouterr().out

    def test_bad_config_exits_one(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["pitlane", "setup"])
        monkeypatch.setenv("PITLANE_BASE_URL", "nope")
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        assert "PITLANE_BASE_URL" in capsys.readouterr().err


class TestConfigureLogging:
    def test_level_and_format(self):
        with patch("pitlane.app.logging.basicConfig") as mock_basic:
            configure_logging(Config(log_level="DEBUG"))
        kwargs = mock_basic.call_args[1]
        assert kwargs["level"] == logging.DEBUG
        assert "%(levelname)s" in kwargs["format"]
        assert len(kwargs["handlers"]) == 1

    def test_file_handler_when_log_dir_set(self, tmp_path):
        log_dir = tmp_path / "logs"
        with patch("pitlane.app.logging.basicConfig") as mock_basic:
            configure_logging(Config(log_dir=log_dir))
        handlers = mock_basic.call_args[1]["handlers"]
        files = [h for h in handlers if isinstance(h, logging.FileHandler)]
        assert len(files) == 1
        path = Path(files[0].baseFilename)
        assert path.parent == log_dir
        assert path.name.startswith("pitlane-")
        files[0].close()
