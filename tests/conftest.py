"""Shared test fixtures for cliprelay."""

from dataclasses import dataclass
from pathlib import Path

import pytest

from cliprelay.config import CliprelayConfig, ProcessingConfig, ServerConfig
from cliprelay.executor import TranscodeResult
from cliprelay.plan import AudioMode, FacingMode, ProcessingRequest, PublishResult
from cliprelay.remote import build_correlation_id
from cliprelay.workflow import RequestOrchestrator

DESTINATION_URL = "https://storage.example.com/upload/abc123?signature=xyz"
MUSIC_URL = "https://cdn.example.com/tracks/song.mp3"


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    """Return a scratch directory inside the test's tmp_path."""
    return tmp_path / "scratch"


@pytest.fixture
def config(scratch_dir: Path) -> CliprelayConfig:
    """Configuration with an isolated scratch directory."""
    return CliprelayConfig(
        server=ServerConfig(max_upload_bytes=1024 * 1024),
        processing=ProcessingConfig(scratch_dir=scratch_dir),
    )


@pytest.fixture
def make_request(tmp_path: Path):
    """Factory for ProcessingRequest with sensible defaults."""

    def _make(
        facing_mode: FacingMode = FacingMode.ENVIRONMENT,
        audio_mode: AudioMode = AudioMode.ORIGINAL,
        music_url: str = "",
        music_start: float = 0.0,
        music_volume: float = 1.0,
        video_path: Path | None = None,
    ) -> ProcessingRequest:
        return ProcessingRequest(
            video_path=video_path or tmp_path / "in.mp4",
            destination_url=DESTINATION_URL,
            facing_mode=facing_mode,
            audio_mode=audio_mode,
            music_url=music_url,
            music_start=music_start,
            music_volume=music_volume,
        )

    return _make


class FakeProber:
    """DurationProber returning a fixed duration."""

    def __init__(self, duration: float | None = 10.0) -> None:
        self.duration = duration
        self.calls: list[Path] = []

    def probe(self, path: Path) -> float | None:
        self.calls.append(path)
        return self.duration

    async def probe_async(self, path: Path) -> float | None:
        return self.probe(path)


class FakeExecutor:
    """Executor that writes a small file to the plan's output."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.plans: list = []

    async def execute_async(self, plan):
        self.plans.append(plan)
        if self.error is not None:
            raise self.error
        plan.output.write_bytes(b"transcoded")
        return TranscodeResult(output_path=plan.output, elapsed_seconds=0.25)


class FakeFetcher:
    """Fetcher that stores a fake music track in the scratch space."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.urls: list[str] = []

    async def fetch(self, url: str, scratch) -> Path:
        self.urls.append(url)
        path = scratch.allocate("music", ".mp3")
        path.write_bytes(b"ID3")
        if self.error is not None:
            raise self.error
        return path


class FakePublisher:
    """Publisher recording what it was asked to upload."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.published: list[tuple[Path, bytes, str]] = []

    async def publish(self, path: Path, destination_url: str) -> PublishResult:
        if self.error is not None:
            raise self.error
        self.published.append((path, path.read_bytes(), destination_url))
        return PublishResult(
            correlation_id=build_correlation_id(destination_url), status_code=200
        )


@dataclass
class OrchestratorParts:
    prober: FakeProber
    executor: FakeExecutor
    fetcher: FakeFetcher
    publisher: FakePublisher


@pytest.fixture
def parts() -> OrchestratorParts:
    """Fake pipeline components, adjustable per test."""
    return OrchestratorParts(
        prober=FakeProber(),
        executor=FakeExecutor(),
        fetcher=FakeFetcher(),
        publisher=FakePublisher(),
    )


@pytest.fixture
def orchestrator(parts: OrchestratorParts, scratch_dir: Path) -> RequestOrchestrator:
    """RequestOrchestrator wired to the fake components."""
    return RequestOrchestrator(
        scratch_dir=scratch_dir,
        prober=parts.prober,
        executor=parts.executor,
        fetcher=parts.fetcher,
        publisher=parts.publisher,
    )
