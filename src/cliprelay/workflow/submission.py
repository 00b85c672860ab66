"""Form parsing for clip submissions.

Form values arrive as strings. Numeric fields are parsed leniently: a
non-numeric music offset becomes 0, a non-numeric volume becomes 0 and an
out-of-range volume is clamped. Only the two enums and the required URLs can
make a submission invalid.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from cliprelay.exceptions import (
    MissingParameterError,
    RequestValidationError,
)
from cliprelay.plan import (
    AudioMode,
    FacingMode,
    ProcessingRequest,
    clamp_start,
    clamp_volume,
    parse_lenient_float,
)


class SubmissionForm(BaseModel):
    """Pydantic model for the multipart form fields of an upload."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    facing_mode: str = Field(default=FacingMode.ENVIRONMENT.value, alias="facingMode")
    audio_mode: str = Field(default=AudioMode.ORIGINAL.value, alias="audioMode")
    music_url: str = Field(default="", alias="musicUrl")
    music_start: float = Field(default=0.0, alias="musicStart")
    music_volume: float = Field(default=1.0, alias="musicVolume")
    destination_url: str = Field(
        default="",
        validation_alias=AliasChoices(
            "destinationUploadUrl", "muxUploadUrl", "destination_url"
        ),
    )

    @field_validator("facing_mode", mode="before")
    @classmethod
    def default_blank_facing_mode(cls, v: Any) -> Any:
        """Treat a blank facing mode like an absent one."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return FacingMode.ENVIRONMENT.value
        return v.strip() if isinstance(v, str) else v

    @field_validator("audio_mode", mode="before")
    @classmethod
    def default_blank_audio_mode(cls, v: Any) -> Any:
        """Treat a blank audio mode like an absent one."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return AudioMode.ORIGINAL.value
        return v.strip() if isinstance(v, str) else v

    @field_validator("music_url", "destination_url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("music_start", mode="before")
    @classmethod
    def parse_music_start(cls, v: Any) -> float:
        """Non-numeric, negative or infinite offsets fall back to 0."""
        return clamp_start(parse_lenient_float(v, 0.0))

    @field_validator("music_volume", mode="before")
    @classmethod
    def parse_music_volume(cls, v: Any) -> float:
        """Non-numeric volume is 0; anything else is clamped to [0, 1]."""
        if v is None:
            return 1.0
        return clamp_volume(parse_lenient_float(v, 0.0))

    def to_request(self, video_path: Path) -> ProcessingRequest:
        """Validate the directives and bind them to the uploaded file.

        Raises:
            MissingParameterError: If the destination URL is missing, or a
                music audio mode was requested without a music URL.
            InvalidParameterError: If facing or audio mode is unrecognized.
        """
        if not self.destination_url:
            raise MissingParameterError("destinationUploadUrl")

        facing_mode = FacingMode.parse(self.facing_mode)
        audio_mode = AudioMode.parse(self.audio_mode)
        if audio_mode.needs_music and not self.music_url:
            raise MissingParameterError("musicUrl")

        return ProcessingRequest(
            video_path=video_path,
            destination_url=self.destination_url,
            facing_mode=facing_mode,
            audio_mode=audio_mode,
            music_url=self.music_url,
            music_start=self.music_start,
            music_volume=self.music_volume,
        )


def parse_form(fields: Mapping[str, Any]) -> SubmissionForm:
    """Build a SubmissionForm from raw form fields.

    Raises:
        RequestValidationError: If a field has an unusable type.
    """
    try:
        return SubmissionForm.model_validate(dict(fields))
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise RequestValidationError(
            f"invalid form field {location}".strip(), parameter=location or None
        ) from e


@dataclass(frozen=True)
class Submission:
    """Raw upload: the stored video file (if any) and its form fields."""

    video_path: Path | None
    form: SubmissionForm
