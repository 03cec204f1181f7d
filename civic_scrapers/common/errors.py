"""Domain errors and failure typing."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class FetchError(PipelineError):
    """Raised when a page cannot be fetched after all attempts."""

    error_code = "FETCH_ERROR"

    def __init__(self, message: str, *, url: str | None = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.url = url
        self.attempts = attempts


class ExtractError(PipelineError):
    """Raised when a locality page cannot be extracted at all."""

    error_code = "EXTRACT_ERROR"


class GeocodeLookupError(PipelineError):
    """Provider failure or malformed payload. Never escapes the geocoder."""

    error_code = "GEOCODE_ERROR"


class OutputWriteError(PipelineError):
    """Raised when results or the geocode cache cannot be persisted."""

    error_code = "OUTPUT_WRITE_ERROR"
