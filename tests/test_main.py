"""
Tests for the command-line interface.
"""

from unittest.mock import patch

import pytest

from pocketllm.main import build_parser, main
from pocketllm.user_preferences import get_user_preferences

from conftest import FakeRuntime


class TestParser:

    def test_global_offline_flag(self):
        args = build_parser().parse_args(["--offline", "summarize", "report.pdf"])
        assert args.offline is True
        assert args.command == "summarize"
        assert args.file == "report.pdf"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:

    def test_models_lists_catalog(self, capsys):
        assert main(["models"]) == 0

        out = capsys.readouterr().out
        assert "llama3.2:1b" in out
        assert "Core 3B" in out
        assert "Offline mode:" in out

    def test_offline_load_without_local_copy(self, capsys):
        runtime = FakeRuntime()
        with patch("pocketllm.main.OllamaRuntime", return_value=runtime):
            assert main(["--offline", "load", "Core 3B"]) == 1

        assert runtime.download_calls == 0
        assert "offline mode is enabled" in capsys.readouterr().err
        assert get_user_preferences().force_offline_mode is False

    def test_load_downloads_model(self, capsys):
        runtime = FakeRuntime()
        with patch("pocketllm.main.OllamaRuntime", return_value=runtime):
            assert main(["load", "Core 1B"]) == 0

        assert "Loaded llama3.2:1b." in capsys.readouterr().out
        assert get_user_preferences().is_model_installed("llama3.2:1b")
