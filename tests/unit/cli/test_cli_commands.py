"""Tests for the cliprelay CLI."""

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner

from cliprelay.cli import main
from cliprelay.cli.common import cli_logging_config
from cliprelay.cli.exit_codes import ExitCode
from cliprelay.config import CliprelayConfig, LoggingConfig
from cliprelay.logging import RequestContextFilter
from cliprelay.tools import ToolInfo


@pytest.fixture(autouse=True)
def _remove_cli_log_handlers():
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if any(isinstance(f, RequestContextFilter) for f in handler.filters):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def isolated_env(tmp_path: Path) -> dict[str, str]:
    """Point the config loader at a non-existent file."""
    return {"CLIPRELAY_CONFIG_PATH": str(tmp_path / "absent.toml")}


class TestMainGroup:
    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("serve", "plan", "doctor"):
            assert command in result.output


class TestPlanCommand:
    def test_pass_through(self, runner, isolated_env):
        result = runner.invoke(
            main, ["plan", "clip.mp4", "--duration", "4"], env=isolated_env
        )

        assert result.exit_code == 0, result.output
        assert "Plan: pass_through" in result.output
        assert "pass-through: publish clip.mp4 unchanged" in result.output

    def test_mirror(self, runner, isolated_env):
        result = runner.invoke(
            main,
            ["plan", "clip.mp4", "--facing-mode", "user", "--duration", "4"],
            env=isolated_env,
        )

        assert result.exit_code == 0, result.output
        assert "Plan: mirror_only" in result.output
        assert "ffmpeg -y -hide_banner -i clip.mp4 -vf hflip" in result.output

    def test_music_plan_uses_url_extension(self, runner, isolated_env):
        result = runner.invoke(
            main,
            [
                "plan",
                "clip.mp4",
                "--audio-mode",
                "music",
                "--music-url",
                "https://cdn.example.com/track.ogg",
                "--music-start",
                "2",
                "--music-volume",
                "0.5",
                "--duration",
                "6",
            ],
            env=isolated_env,
        )

        assert result.exit_code == 0, result.output
        assert "Plan: full_transform" in result.output
        assert "-ss 2 -i music.ogg" in result.output
        assert "volume=0.5" in result.output
        assert "atrim=0:6" in result.output

    def test_probes_duration_when_not_given(self, runner, isolated_env):
        with patch(
            "cliprelay.cli.plan.FFprobeDurationProber.probe", return_value=7.5
        ) as mock_probe:
            result = runner.invoke(main, ["plan", "clip.mp4"], env=isolated_env)

        assert result.exit_code == 0, result.output
        mock_probe.assert_called_once_with(Path("clip.mp4"))
        assert "Duration: 7.5s" in result.output

    def test_invalid_audio_mode(self, runner, isolated_env):
        result = runner.invoke(
            main,
            ["plan", "clip.mp4", "--audio-mode", "loud", "--duration", "1"],
            env=isolated_env,
        )

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "invalid audioMode" in result.output

    def test_music_without_url(self, runner, isolated_env):
        result = runner.invoke(
            main,
            ["plan", "clip.mp4", "--audio-mode", "music", "--duration", "1"],
            env=isolated_env,
        )

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "missing musicUrl" in result.output

    def test_invalid_config_file(self, runner, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text("[processing]\ncrf = 100\n")

        result = runner.invoke(
            main, ["--config", str(bad), "plan", "clip.mp4", "--duration", "1"]
        )

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "Invalid configuration" in result.output

    def test_quoted_number_in_config_file(self, runner, tmp_path):
        bad = tmp_path / "quoted.toml"
        bad.write_text('[processing]\ncrf = "20"\n')

        result = runner.invoke(
            main, ["--config", str(bad), "plan", "clip.mp4", "--duration", "1"]
        )

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "processing.crf must be an integer" in result.output


def _tool(name: str, available: bool = True) -> ToolInfo:
    if not available:
        return ToolInfo(name=name)
    return ToolInfo(name=name, path=Path(f"/usr/bin/{name}"), version="7.0")


class TestDoctorCommand:
    def test_all_tools_available(self, runner, isolated_env):
        with patch(
            "cliprelay.cli.doctor.detect_tool",
            side_effect=lambda name, path: _tool(name),
        ):
            result = runner.invoke(main, ["doctor", "--verbose"], env=isolated_env)

        assert result.exit_code == 0
        assert "✓ ffmpeg: 7.0 (/usr/bin/ffmpeg)" in result.output
        assert "✓ ffprobe: 7.0" in result.output

    def test_missing_tool(self, runner, isolated_env):
        with patch(
            "cliprelay.cli.doctor.detect_tool",
            side_effect=lambda name, path: _tool(name, available=name != "ffprobe"),
        ):
            result = runner.invoke(main, ["doctor"], env=isolated_env)

        assert result.exit_code == ExitCode.TOOL_NOT_AVAILABLE
        assert "✗ ffprobe: not found" in result.output

    def test_json_output(self, runner, isolated_env):
        with patch(
            "cliprelay.cli.doctor.detect_tool",
            side_effect=lambda name, path: _tool(name),
        ):
            result = runner.invoke(main, ["doctor", "--json"], env=isolated_env)

        payload = json.loads(result.output)
        assert payload["ffmpeg"] == {
            "available": True,
            "path": "/usr/bin/ffmpeg",
            "version": "7.0",
        }


class TestServeCommand:
    def test_runs_server_with_cli_overrides(self, runner, isolated_env, tmp_path):
        fake_run_server = MagicMock(return_value="coroutine")
        with (
            patch("cliprelay.cli.serve.run_server", fake_run_server),
            patch(
                "cliprelay.cli.serve.asyncio.run", return_value=ExitCode.SUCCESS
            ) as mock_run,
        ):
            result = runner.invoke(
                main,
                [
                    "serve",
                    "--port",
                    "9090",
                    "--bind",
                    "127.0.0.1",
                    "--scratch-dir",
                    str(tmp_path / "scratch"),
                ],
                env=isolated_env,
            )

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once_with("coroutine")
        config = fake_run_server.call_args.args[0]
        assert config.server.port == 9090
        assert config.server.bind == "127.0.0.1"
        assert config.processing.scratch_dir == tmp_path / "scratch"

    def test_port_from_environment(self, runner, isolated_env):
        fake_run_server = MagicMock(return_value="coroutine")
        with (
            patch("cliprelay.cli.serve.run_server", fake_run_server),
            patch("cliprelay.cli.serve.asyncio.run", return_value=ExitCode.SUCCESS),
        ):
            result = runner.invoke(main, ["serve"], env={**isolated_env, "PORT": "5050"})

        assert result.exit_code == 0, result.output
        assert fake_run_server.call_args.args[0].server.port == 5050

    def test_server_error_exit_code(self, runner, isolated_env):
        with (
            patch("cliprelay.cli.serve.run_server", MagicMock()),
            patch(
                "cliprelay.cli.serve.asyncio.run", return_value=ExitCode.SERVER_ERROR
            ),
        ):
            result = runner.invoke(main, ["serve"], env=isolated_env)

        assert result.exit_code == ExitCode.SERVER_ERROR


class TestCliLoggingConfig:
    def _context(self, **obj) -> click.Context:
        return click.Context(main, obj=obj)

    def test_group_options_override_file_settings(self, tmp_path):
        config = CliprelayConfig(
            logging=LoggingConfig(level="warning", format="text", max_bytes=1024)
        )
        ctx = self._context(
            log_level="debug", log_file=tmp_path / "cli.log", log_json=True
        )

        merged = cli_logging_config(ctx, config, include_stderr=True)

        assert merged.level == "debug"
        assert merged.file == tmp_path / "cli.log"
        assert merged.format == "json"
        assert merged.include_stderr is True
        assert merged.max_bytes == 1024

    def test_unset_options_keep_file_settings(self):
        config = CliprelayConfig(
            logging=LoggingConfig(level="error", format="json", include_stderr=True)
        )
        ctx = self._context(log_level=None, log_file=None, log_json=False)

        assert cli_logging_config(ctx, config) == config.logging
