"""Transform plan builder.

Maps the request directives (facing mode, audio mode, presence of a music
URL, music offset and volume) plus the probed clip duration onto a concrete
ffmpeg invocation, or onto no invocation at all.

Case selection is a priority-ordered rule table whose last rule matches
everything, so every valid combination lands on exactly one case. Within
FullTransform the audio mode picks the stream mapping and codec policy:

    original        copy audio; copy video unless flipping
    mute            drop audio; copy video unless flipping
    music           replace audio with the scaled, trimmed music track
    music+original  mix the scaled music track under the original audio

The music modes always re-encode video and encode audio to AAC, and stop at
the shorter of the two inputs.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from cliprelay.exceptions import MissingParameterError
from cliprelay.plan.filters import (
    HFLIP,
    build_mix_filter,
    build_music_filter,
    format_number,
)
from cliprelay.plan.models import (
    AudioMode,
    EncoderSettings,
    FacingMode,
    FullTransform,
    MirrorOnly,
    PassThrough,
    PlanKind,
    ProcessingRequest,
    TransformPlan,
)

logger = logging.getLogger(__name__)

GLOBAL_ARGS: tuple[str, ...] = ("-y", "-hide_banner")

DEFAULT_ENCODER = EncoderSettings()


@dataclass(frozen=True)
class PlanRule:
    """One row of the selection table. None fields match anything."""

    kind: PlanKind
    facing: FacingMode | None = None
    audio: AudioMode | None = None
    has_music_url: bool | None = None

    def matches(
        self, facing: FacingMode, audio: AudioMode, has_music_url: bool
    ) -> bool:
        return (
            (self.facing is None or self.facing is facing)
            and (self.audio is None or self.audio is audio)
            and (self.has_music_url is None or self.has_music_url == has_music_url)
        )


# First match wins; the final catch-all keeps selection total.
PLAN_RULES: tuple[PlanRule, ...] = (
    PlanRule(PlanKind.PASS_THROUGH, FacingMode.ENVIRONMENT, AudioMode.ORIGINAL, False),
    PlanRule(PlanKind.MIRROR_ONLY, FacingMode.USER, AudioMode.ORIGINAL, False),
    PlanRule(PlanKind.FULL_TRANSFORM),
)


def select_plan_kind(
    facing: FacingMode, audio: AudioMode, has_music_url: bool
) -> PlanKind:
    """Pick the plan case for a combination of directives."""
    for rule in PLAN_RULES:
        if rule.matches(facing, audio, has_music_url):
            return rule.kind
    raise AssertionError("PLAN_RULES must end with a catch-all rule")


def build_plan(
    request: ProcessingRequest,
    duration: float | None,
    output_path: Path,
    music_path: Path | None = None,
    encoder: EncoderSettings = DEFAULT_ENCODER,
) -> TransformPlan:
    """Build the transform plan for one request.

    Args:
        request: Validated request directives.
        duration: Probed clip duration in seconds, None if unknown. Only
            used to bound the music track in ``music`` mode.
        output_path: Where ffmpeg should write its output.
        music_path: Local copy of the music track; required for the music
            audio modes, ignored otherwise.
        encoder: Encoder knobs for re-encoded streams.

    Returns:
        PassThrough, MirrorOnly or FullTransform.

    Raises:
        InvalidParameterError: If audio or facing mode is unrecognized.
        MissingParameterError: If a music mode was requested without a URL.
        ValueError: If a music mode is planned before the track was fetched.
    """
    audio_mode = AudioMode.parse(request.audio_mode)
    facing_mode = FacingMode.parse(request.facing_mode)

    if audio_mode.needs_music and not request.has_music_url:
        raise MissingParameterError("musicUrl")

    kind = select_plan_kind(facing_mode, audio_mode, request.has_music_url)
    logger.debug(
        "Selected %s plan",
        kind.value,
        extra={
            "facing_mode": facing_mode.value,
            "audio_mode": audio_mode.value,
            "has_music_url": request.has_music_url,
        },
    )

    if kind is PlanKind.PASS_THROUGH:
        return PassThrough(source=request.video_path)

    if kind is PlanKind.MIRROR_ONLY:
        args = [
            *GLOBAL_ARGS,
            "-i",
            str(request.video_path),
            "-vf",
            HFLIP,
            *encoder.video_args(),
            "-c:a",
            "copy",
            *encoder.container_args(),
            str(output_path),
        ]
        return MirrorOnly(
            source=request.video_path, output=output_path, args=tuple(args)
        )

    flip = facing_mode is FacingMode.USER
    if audio_mode.needs_music and music_path is None:
        raise ValueError("music track must be fetched before planning")

    build_streams = _AUDIO_BUILDERS[audio_mode]
    inputs = _build_inputs(request, audio_mode, music_path)
    filter_graph, stream_args = build_streams(request, duration, flip, encoder)

    args = [
        *GLOBAL_ARGS,
        *inputs,
        *stream_args,
        *encoder.container_args(),
        str(output_path),
    ]
    return FullTransform(
        source=request.video_path,
        output=output_path,
        audio_mode=audio_mode,
        flip=flip,
        args=tuple(args),
        music=music_path if audio_mode.needs_music else None,
        filter_graph=filter_graph,
    )


def _build_inputs(
    request: ProcessingRequest, audio_mode: AudioMode, music_path: Path | None
) -> list[str]:
    inputs = ["-i", str(request.video_path)]
    if audio_mode.needs_music:
        # -ss before -i seeks the music input only
        inputs += ["-ss", format_number(request.music_start), "-i", str(music_path)]
    return inputs


def _flip_args(flip: bool) -> list[str]:
    return ["-vf", HFLIP] if flip else []


StreamBuilder = Callable[
    [ProcessingRequest, float | None, bool, EncoderSettings],
    tuple[str | None, list[str]],
]


def _original_streams(
    request: ProcessingRequest,
    duration: float | None,
    flip: bool,
    encoder: EncoderSettings,
) -> tuple[str | None, list[str]]:
    if flip:
        return None, [*_flip_args(flip), *encoder.video_args(), "-c:a", "copy"]
    return None, ["-c:v", "copy", "-c:a", "copy"]


def _mute_streams(
    request: ProcessingRequest,
    duration: float | None,
    flip: bool,
    encoder: EncoderSettings,
) -> tuple[str | None, list[str]]:
    args = [*_flip_args(flip), "-map", "0:v:0", "-an"]
    if flip:
        args += encoder.video_args()
    else:
        args += ["-c:v", "copy"]
    return None, args


def _music_streams(
    request: ProcessingRequest,
    duration: float | None,
    flip: bool,
    encoder: EncoderSettings,
) -> tuple[str | None, list[str]]:
    graph = build_music_filter(request.music_volume, duration)
    return graph, _filtered_audio_args(graph, flip, encoder)


def _mix_streams(
    request: ProcessingRequest,
    duration: float | None,
    flip: bool,
    encoder: EncoderSettings,
) -> tuple[str | None, list[str]]:
    graph = build_mix_filter(request.music_volume)
    return graph, _filtered_audio_args(graph, flip, encoder)


def _filtered_audio_args(
    graph: str, flip: bool, encoder: EncoderSettings
) -> list[str]:
    return [
        "-filter_complex",
        graph,
        "-map",
        "0:v:0",
        "-map",
        "[a]",
        *_flip_args(flip),
        "-shortest",
        *encoder.video_args(),
        "-c:a",
        encoder.audio_encoder,
    ]


_AUDIO_BUILDERS: dict[AudioMode, StreamBuilder] = {
    AudioMode.ORIGINAL: _original_streams,
    AudioMode.MUTE: _mute_streams,
    AudioMode.MUSIC: _music_streams,
    AudioMode.MUSIC_AND_ORIGINAL: _mix_streams,
}


def describe_plan(plan: TransformPlan, ffmpeg: str | Path = "ffmpeg") -> str:
    """Render a plan as a one-line, shell-quoted description."""
    if isinstance(plan, PassThrough):
        return f"pass-through: publish {shlex.quote(str(plan.source))} unchanged"
    return shlex.join([str(ffmpeg), *plan.args])
