"""CLI plan command: dry-run the transform planner for a local clip."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from cliprelay.cli.common import load_cli_config, setup_logging
from cliprelay.cli.exit_codes import ExitCode
from cliprelay.exceptions import RequestValidationError
from cliprelay.introspector import FFprobeDurationProber
from cliprelay.plan import EncoderSettings, build_plan, describe_plan
from cliprelay.remote import music_extension
from cliprelay.workflow import parse_form

DRY_RUN_DESTINATION = "dry-run"


@click.command("plan")
@click.argument("input_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--facing-mode",
    default="environment",
    show_default=True,
    help="Camera the clip was captured with: environment or user.",
)
@click.option(
    "--audio-mode",
    default="original",
    show_default=True,
    help="Audio policy: original, mute, music or music+original.",
)
@click.option("--music-url", default="", help="Music track URL for music modes.")
@click.option(
    "--music-start", default="0", help="Offset into the music track, in seconds."
)
@click.option(
    "--music-volume", default="1", help="Music gain between 0 and 1."
)
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Clip duration in seconds (default: probe INPUT with ffprobe).",
)
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("output.mp4"),
    show_default=True,
    help="Output path used in the printed command.",
)
@click.pass_context
def plan_command(
    ctx: click.Context,
    input_path: Path,
    facing_mode: str,
    audio_mode: str,
    music_url: str,
    music_start: str,
    music_volume: str,
    duration: float | None,
    output_path: Path,
) -> None:
    """Show the transform plan for INPUT without running it.

    Prints the selected plan kind and the ffmpeg command that would run.
    Exits with code 10 when the directives are invalid.

    \b
    Examples:
        cliprelay plan clip.mp4 --facing-mode user
        cliprelay plan clip.mp4 --audio-mode music --music-url https://x/a.mp3
    """
    config = load_cli_config(ctx)
    setup_logging(ctx, config)

    form = parse_form(
        {
            "facingMode": facing_mode,
            "audioMode": audio_mode,
            "musicUrl": music_url,
            "musicStart": music_start,
            "musicVolume": music_volume,
            "destinationUploadUrl": DRY_RUN_DESTINATION,
        }
    )
    try:
        request = form.to_request(input_path)
    except RequestValidationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.VALIDATION_ERROR)

    if duration is None:
        prober = FFprobeDurationProber(
            ffprobe_path=config.tools.ffprobe,
            timeout=config.processing.probe_timeout,
        )
        duration = prober.probe(input_path)

    music_path = None
    if request.needs_music:
        music_path = Path(f"music{music_extension(request.music_url)}")

    plan = build_plan(
        request,
        duration,
        output_path,
        music_path=music_path,
        encoder=EncoderSettings.from_config(config.processing),
    )

    click.echo(f"Plan: {plan.kind.value}")
    click.echo(f"Duration: {'unknown' if duration is None else f'{duration:g}s'}")
    click.echo(describe_plan(plan, config.tools.ffmpeg or "ffmpeg"))
