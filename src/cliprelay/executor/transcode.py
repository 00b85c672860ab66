"""Transcode executor: runs a TransformPlan through ffmpeg."""

from __future__ import annotations

import asyncio
import logging
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import time
from dataclasses import dataclass
from pathlib import Path

from cliprelay.core.subprocess_utils import run_command
from cliprelay.exceptions import TranscodeError
from cliprelay.executor.ffmpeg_utils import stderr_tail, validate_output
from cliprelay.plan import PassThrough, TransformPlan
from cliprelay.tools import ToolNotFoundError, require_tool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscodeResult:
    """Result of a transcode operation."""

    output_path: Path
    """File produced (the source itself for pass-through plans)."""

    skipped: bool = False
    """True if no ffmpeg invocation was needed."""

    elapsed_seconds: float = 0.0
    stderr: str = ""


class TranscodeExecutor:
    """Runs ffmpeg with a plan's arguments and checks the result.

    Failures raise TranscodeError; the caller treats them as fatal for the
    request. A zero exit status is not trusted on its own: the declared
    output must also exist and be non-empty.
    """

    DEFAULT_TIMEOUT: int = 1800  # 30 minutes

    def __init__(
        self,
        ffmpeg_path: Path | None = None,
        timeout: int | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            ffmpeg_path: Optional configured path to ffmpeg.
            timeout: Seconds before ffmpeg is killed. None uses DEFAULT_TIMEOUT.
        """
        self._configured_path = ffmpeg_path
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

    @property
    def tool_path(self) -> Path:
        """Path to ffmpeg.

        Raises:
            TranscodeError: If ffmpeg is not available.
        """
        try:
            return require_tool("ffmpeg", self._configured_path)
        except ToolNotFoundError as e:
            raise TranscodeError(str(e)) from e

    def execute(self, plan: TransformPlan) -> TranscodeResult:
        """Execute a plan.

        Args:
            plan: Plan from build_plan().

        Returns:
            TranscodeResult describing the produced file.

        Raises:
            TranscodeError: If ffmpeg fails, times out or produces no output.
        """
        if isinstance(plan, PassThrough):
            logger.debug("Pass-through plan, skipping ffmpeg")
            return TranscodeResult(output_path=plan.source, skipped=True)

        cmd: list[str | Path] = [self.tool_path, *plan.args]
        start = time.monotonic()
        try:
            _, stderr, returncode = run_command(cmd, timeout=self._timeout)
        except subprocess.TimeoutExpired as e:
            raise TranscodeError(
                f"ffmpeg timed out after {self._timeout}s"
            ) from e
        except OSError as e:
            raise TranscodeError(f"ffmpeg could not be started: {e}") from e
        elapsed = time.monotonic() - start

        if returncode != 0:
            tail = stderr_tail(stderr)
            logger.error(
                "ffmpeg exited with %d",
                returncode,
                extra={"plan_kind": plan.kind.value, "stderr_tail": tail},
            )
            raise TranscodeError(
                f"ffmpeg failed: {tail}", returncode=returncode, stderr=stderr
            )

        valid, error = validate_output(plan.output)
        if not valid:
            raise TranscodeError(
                f"ffmpeg produced no output: {error}",
                returncode=returncode,
                stderr=stderr,
            )

        logger.info(
            "ffmpeg finished in %.1fs",
            elapsed,
            extra={"plan_kind": plan.kind.value, "elapsed_seconds": round(elapsed, 3)},
        )
        return TranscodeResult(
            output_path=plan.output, elapsed_seconds=elapsed, stderr=stderr
        )

    async def execute_async(self, plan: TransformPlan) -> TranscodeResult:
        """Run execute() in a worker thread so the event loop stays free."""
        return await asyncio.to_thread(self.execute, plan)
