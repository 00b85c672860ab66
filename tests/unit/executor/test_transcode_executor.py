"""Tests for TranscodeExecutor."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from cliprelay.exceptions import TranscodeError
from cliprelay.executor import TranscodeExecutor
from cliprelay.executor.ffmpeg_utils import stderr_tail, validate_output
from cliprelay.plan import MirrorOnly, PassThrough
from cliprelay.tools import ToolNotFoundError

FFMPEG = Path("/usr/bin/ffmpeg")


@pytest.fixture
def mirror_plan(tmp_path: Path) -> MirrorOnly:
    output = tmp_path / "out.mp4"
    return MirrorOnly(
        source=tmp_path / "in.mp4",
        output=output,
        args=("-y", "-i", str(tmp_path / "in.mp4"), "-vf", "hflip", str(output)),
    )


@pytest.fixture
def executor() -> TranscodeExecutor:
    return TranscodeExecutor(timeout=60)


class TestValidateOutput:
    def test_missing(self, tmp_path):
        valid, error = validate_output(tmp_path / "nope.mp4")
        assert not valid
        assert error == "output file was not created: nope.mp4"

    def test_empty(self, tmp_path):
        path = tmp_path / "empty.mp4"
        path.touch()
        assert validate_output(path) == (False, "output file is empty: empty.mp4")

    def test_valid(self, tmp_path):
        path = tmp_path / "ok.mp4"
        path.write_bytes(b"data")
        assert validate_output(path) == (True, None)


def test_stderr_tail_keeps_last_lines():
    stderr = "\n".join(f"line {i}" for i in range(30))
    assert stderr_tail(stderr, lines=2) == "line 28\nline 29"


class TestTranscodeExecutor:
    def test_pass_through_skips_ffmpeg(self, executor, tmp_path):
        plan = PassThrough(source=tmp_path / "in.mp4")

        with patch("cliprelay.executor.transcode.run_command") as mock_run:
            result = executor.execute(plan)

        mock_run.assert_not_called()
        assert result.skipped
        assert result.output_path == plan.source

    def test_successful_run(self, executor, mirror_plan):
        def fake_run(cmd, timeout):
            mirror_plan.output.write_bytes(b"mp4")
            return "", "frame=10", 0

        with (
            patch("cliprelay.executor.transcode.require_tool", return_value=FFMPEG),
            patch(
                "cliprelay.executor.transcode.run_command", side_effect=fake_run
            ) as mock_run,
        ):
            result = executor.execute(mirror_plan)

        cmd = mock_run.call_args.args[0]
        assert cmd == [FFMPEG, *mirror_plan.args]
        assert mock_run.call_args.kwargs["timeout"] == 60
        assert result.output_path == mirror_plan.output
        assert not result.skipped

    def test_nonzero_exit_raises_with_stderr(self, executor, mirror_plan):
        with (
            patch("cliprelay.executor.transcode.require_tool", return_value=FFMPEG),
            patch(
                "cliprelay.executor.transcode.run_command",
                return_value=("", "Unknown encoder 'libx264'", 1),
            ),
            pytest.raises(TranscodeError) as exc_info,
        ):
            executor.execute(mirror_plan)

        assert exc_info.value.returncode == 1
        assert "Unknown encoder" in str(exc_info.value)
        assert exc_info.value.http_status == 500

    def test_zero_exit_without_output_raises(self, executor, mirror_plan):
        with (
            patch("cliprelay.executor.transcode.require_tool", return_value=FFMPEG),
            patch(
                "cliprelay.executor.transcode.run_command", return_value=("", "", 0)
            ),
            pytest.raises(TranscodeError, match="produced no output"),
        ):
            executor.execute(mirror_plan)

    def test_timeout_raises(self, executor, mirror_plan):
        with (
            patch("cliprelay.executor.transcode.require_tool", return_value=FFMPEG),
            patch(
                "cliprelay.executor.transcode.run_command",
                side_effect=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=60),
            ),
            pytest.raises(TranscodeError, match="timed out"),
        ):
            executor.execute(mirror_plan)

    def test_missing_ffmpeg_raises(self, executor, mirror_plan):
        with (
            patch(
                "cliprelay.executor.transcode.require_tool",
                side_effect=ToolNotFoundError("ffmpeg"),
            ),
            pytest.raises(TranscodeError, match="ffmpeg"),
        ):
            executor.execute(mirror_plan)

    async def test_execute_async(self, executor, tmp_path):
        plan = PassThrough(source=tmp_path / "in.mp4")
        result = await executor.execute_async(plan)
        assert result.skipped
