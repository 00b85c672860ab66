"""Request orchestration.

A request moves through a fixed sequence: receive the upload, validate the
directives, probe the clip duration, fetch the music track when the audio
mode needs one, build the transform plan, run ffmpeg when the plan needs a
transcode, and publish the artifact. Every file created along the way lives
in the request's ScratchSpace and is removed when the request ends, whether
it succeeded or failed.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING

from cliprelay.exceptions import (
    MissingParameterError,
    ProcessingError,
    TranscodeError,
)
from cliprelay.executor import TranscodeExecutor
from cliprelay.introspector import DurationProber, FFprobeDurationProber
from cliprelay.plan import (
    EncoderSettings,
    ProcessingRequest,
    PublishResult,
    TransformPlan,
    build_plan,
)
from cliprelay.remote import AssetPublisher, MusicFetcher
from cliprelay.workflow.scratch import ScratchSpace
from cliprelay.workflow.submission import Submission
from cliprelay.workflow.timeline import RequestTimeline

if TYPE_CHECKING:
    import httpx

    from cliprelay.config import CliprelayConfig

logger = logging.getLogger(__name__)

SubmissionReceiver = Callable[[ScratchSpace], Awaitable[Submission]]


class RequestOrchestrator:
    """Runs upload requests end to end.

    The orchestrator holds no per-request state; concurrent requests each
    get their own ScratchSpace and RequestTimeline.
    """

    def __init__(
        self,
        scratch_dir: Path,
        prober: DurationProber,
        executor: TranscodeExecutor,
        fetcher: MusicFetcher,
        publisher: AssetPublisher,
        encoder: EncoderSettings | None = None,
    ) -> None:
        self.scratch_dir = scratch_dir
        self._prober = prober
        self._executor = executor
        self._fetcher = fetcher
        self._publisher = publisher
        self._encoder = encoder or EncoderSettings()

    @classmethod
    def from_config(
        cls, config: CliprelayConfig, client: httpx.AsyncClient
    ) -> RequestOrchestrator:
        """Wire the default components from configuration.

        Args:
            config: Loaded application configuration.
            client: Shared HTTP client for music downloads and publishing.
        """
        processing = config.processing
        return cls(
            scratch_dir=processing.scratch_dir,
            prober=FFprobeDurationProber(
                ffprobe_path=config.tools.ffprobe,
                timeout=processing.probe_timeout,
            ),
            executor=TranscodeExecutor(
                ffmpeg_path=config.tools.ffmpeg,
                timeout=processing.transcode_timeout,
            ),
            fetcher=MusicFetcher(client, timeout=processing.fetch_timeout),
            publisher=AssetPublisher(client, timeout=processing.publish_timeout),
            encoder=EncoderSettings.from_config(processing),
        )

    def open_scratch(self) -> ScratchSpace:
        """Create the scratch space for a new request."""
        return ScratchSpace(self.scratch_dir)

    async def handle(
        self,
        receive: SubmissionReceiver,
        timeline: RequestTimeline | None = None,
    ) -> PublishResult:
        """Receive, process and clean up one request.

        Args:
            receive: Coroutine factory that stores the upload into the
                given scratch space and returns the parsed submission.
            timeline: Optional timeline; a new one is created if omitted.

        Returns:
            PublishResult of the successful upload.

        Raises:
            ProcessingError: Any validation or processing failure. Scratch
                files are removed before the error propagates.
        """
        timeline = timeline or RequestTimeline()
        timeline.mark("request_start")
        try:
            with self.open_scratch() as scratch:
                submission = await receive(scratch)
                result = await self.process(submission, scratch, timeline)
        except ProcessingError as e:
            timeline.mark(
                "request_failed",
                level=logging.WARNING,
                error_code=e.code,
                error=str(e),
            )
            raise
        except Exception as e:
            timeline.mark(
                "request_failed",
                level=logging.ERROR,
                error_code="INTERNAL_ERROR",
                error=str(e),
            )
            raise
        timeline.mark("request_finished", asset_id=result.correlation_id)
        return result

    def validate(self, submission: Submission) -> ProcessingRequest:
        """Turn a raw submission into a validated request.

        Raises:
            MissingParameterError: If the video or a required URL is absent.
            InvalidParameterError: If an enum directive is unrecognized.
        """
        if submission.video_path is None:
            raise MissingParameterError("video")
        return submission.form.to_request(submission.video_path)

    async def process(
        self,
        submission: Submission,
        scratch: ScratchSpace,
        timeline: RequestTimeline | None = None,
    ) -> PublishResult:
        """Process a received submission inside an open scratch space.

        The caller owns ``scratch`` and is responsible for closing it.
        """
        timeline = timeline or RequestTimeline()
        request = self.validate(submission)
        timeline.mark(
            "upload_received",
            facing_mode=request.facing_mode.value,
            audio_mode=request.audio_mode.value,
        )

        duration = await self._prober.probe_async(request.video_path)
        timeline.mark("duration_probed", duration=duration)

        music_path = None
        if request.needs_music:
            music_path = await self._fetcher.fetch(request.music_url, scratch)
            timeline.mark("music_fetched")

        plan = build_plan(
            request,
            duration,
            scratch.allocate("output", ".mp4"),
            music_path=music_path,
            encoder=self._encoder,
        )
        timeline.mark("plan_built", plan_kind=plan.kind.value)

        artifact = await self._run_plan(plan, timeline)

        timeline.mark("publish_start")
        result = await self._publisher.publish(artifact, request.destination_url)
        timeline.mark("publish_end", status_code=result.status_code)
        return result

    async def _run_plan(self, plan: TransformPlan, timeline: RequestTimeline) -> Path:
        if plan.requires_transcode:
            timeline.mark("transcode_start")
            result = await self._executor.execute_async(plan)
            timeline.mark(
                "transcode_end", transcode_seconds=round(result.elapsed_seconds, 3)
            )
        artifact = plan.artifact
        if not artifact.exists():
            raise TranscodeError(f"output file was not created: {artifact.name}")
        return artifact
