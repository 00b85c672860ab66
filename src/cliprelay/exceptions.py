"""Error taxonomy for clip processing.

Every fatal failure of a request is a ProcessingError. The HTTP layer maps
``http_status`` and ``code`` onto the error response; nothing else needs to
know which step failed.

Duration probing has no error type: a failed probe degrades to "no trim
applied" and never aborts a request.
"""

from __future__ import annotations


class ProcessingError(Exception):
    """Base class for errors that abort a processing request."""

    http_status: int = 500
    code: str = "PROCESSING_FAILED"


class RequestValidationError(ProcessingError):
    """Raised when request parameters are missing or invalid."""

    http_status = 400
    code = "INVALID_REQUEST"

    def __init__(self, message: str, parameter: str | None = None) -> None:
        self.parameter = parameter
        super().__init__(message)


class MissingParameterError(RequestValidationError):
    """Raised when a required request parameter is absent."""

    code = "MISSING_PARAMETER"

    def __init__(self, parameter: str) -> None:
        super().__init__(f"missing {parameter}", parameter=parameter)


class InvalidParameterError(RequestValidationError):
    """Raised when a request parameter has an unrecognized value."""

    code = "INVALID_PARAMETER"

    def __init__(self, parameter: str, value: object = None) -> None:
        self.value = value
        super().__init__(f"invalid {parameter}", parameter=parameter)


class FetchError(ProcessingError):
    """Raised when the music track cannot be downloaded."""

    code = "FETCH_FAILED"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TranscodeError(ProcessingError):
    """Raised when ffmpeg fails or produces no output."""

    code = "TRANSCODE_FAILED"

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class PublishError(ProcessingError):
    """Raised when the ingestion endpoint rejects the upload."""

    code = "PUBLISH_FAILED"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class UploadTooLargeError(RequestValidationError):
    """Raised when an upload part exceeds the configured size limit."""

    http_status = 413
    code = "PAYLOAD_TOO_LARGE"

    def __init__(self, limit: int, parameter: str = "video") -> None:
        self.limit = limit
        super().__init__(
            f"{parameter} exceeds upload limit of {limit} bytes", parameter
        )
