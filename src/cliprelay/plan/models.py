"""Request and transform plan data model.

A ProcessingRequest captures the directives of one upload. The plan builder
turns it into exactly one TransformPlan case:

- PassThrough: publish the upload unchanged, ffmpeg is never invoked
- MirrorOnly: horizontal flip, video re-encoded, audio copied
- FullTransform: everything else (audio copy/drop/replace/mix, optional flip)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, TypeAlias

from cliprelay.exceptions import InvalidParameterError

if TYPE_CHECKING:
    from cliprelay.config.models import ProcessingConfig


class FacingMode(Enum):
    """Camera direction that captured the clip."""

    ENVIRONMENT = "environment"  # Rear camera, orientation already correct
    USER = "user"  # Front camera, needs a mirror flip

    @classmethod
    def parse(cls, value: FacingMode | str) -> FacingMode:
        """Coerce a form value, raising InvalidParameterError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidParameterError("facingMode", value) from None


class AudioMode(Enum):
    """Policy for the output's audio track."""

    ORIGINAL = "original"
    MUTE = "mute"
    MUSIC = "music"
    MUSIC_AND_ORIGINAL = "music+original"

    @property
    def needs_music(self) -> bool:
        """True if this mode consumes an external music track."""
        return self in (AudioMode.MUSIC, AudioMode.MUSIC_AND_ORIGINAL)

    @classmethod
    def parse(cls, value: AudioMode | str) -> AudioMode:
        """Coerce a form value, raising InvalidParameterError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidParameterError("audioMode", value) from None


class PlanKind(Enum):
    """Which transform plan case was selected."""

    PASS_THROUGH = "pass_through"
    MIRROR_ONLY = "mirror_only"
    FULL_TRANSFORM = "full_transform"


@dataclass(frozen=True)
class ProcessingRequest:
    """Validated directives for one uploaded clip."""

    video_path: Path
    destination_url: str
    facing_mode: FacingMode = FacingMode.ENVIRONMENT
    audio_mode: AudioMode = AudioMode.ORIGINAL
    music_url: str = ""
    music_start: float = 0.0
    """Offset into the music track, seconds, never negative."""
    music_volume: float = 1.0
    """Music gain factor, already clamped to [0, 1]."""

    @property
    def has_music_url(self) -> bool:
        return bool(self.music_url)

    @property
    def should_flip(self) -> bool:
        return self.facing_mode is FacingMode.USER

    @property
    def needs_music(self) -> bool:
        return self.audio_mode.needs_music


@dataclass(frozen=True)
class EncoderSettings:
    """Encoder knobs used whenever a stream has to be re-encoded.

    The defaults give visually near-lossless H.264 at a fast preset; the
    exact values are tunable through the [processing] config section.
    """

    video_encoder: str = "libx264"
    preset: str = "veryfast"
    crf: int = 20
    audio_encoder: str = "aac"
    movflags: str = "+faststart"

    @classmethod
    def from_config(cls, config: ProcessingConfig) -> EncoderSettings:
        return cls(
            video_encoder=config.video_encoder,
            preset=config.preset,
            crf=config.crf,
            audio_encoder=config.audio_encoder,
        )

    def video_args(self) -> list[str]:
        """Arguments selecting the video encoder and its quality."""
        return [
            "-c:v",
            self.video_encoder,
            "-preset",
            self.preset,
            "-crf",
            str(self.crf),
        ]

    def container_args(self) -> list[str]:
        """Arguments moving the index to the front for progressive playback."""
        return ["-movflags", self.movflags]


@dataclass(frozen=True)
class PassThrough:
    """No transform needed; the upload itself is published."""

    source: Path

    kind: ClassVar[PlanKind] = PlanKind.PASS_THROUGH
    requires_transcode: ClassVar[bool] = False

    @property
    def artifact(self) -> Path:
        """File to publish."""
        return self.source

    @property
    def args(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class MirrorOnly:
    """Single-input horizontal flip with the audio stream copied."""

    source: Path
    output: Path
    args: tuple[str, ...]

    kind: ClassVar[PlanKind] = PlanKind.MIRROR_ONLY
    requires_transcode: ClassVar[bool] = True

    @property
    def artifact(self) -> Path:
        return self.output


@dataclass(frozen=True)
class FullTransform:
    """General transform: optional flip plus an audio strategy."""

    source: Path
    output: Path
    audio_mode: AudioMode
    flip: bool
    args: tuple[str, ...]
    music: Path | None = None
    filter_graph: str | None = None

    kind: ClassVar[PlanKind] = PlanKind.FULL_TRANSFORM
    requires_transcode: ClassVar[bool] = True

    @property
    def artifact(self) -> Path:
        return self.output


TransformPlan: TypeAlias = PassThrough | MirrorOnly | FullTransform


@dataclass(frozen=True)
class PublishResult:
    """Outcome of relaying the artifact to the ingestion endpoint."""

    correlation_id: str
    success: bool = True
    status_code: int | None = None
