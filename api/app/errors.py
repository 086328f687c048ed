from __future__ import annotations


class StudioError(Exception):
    """Base class for errors surfaced to the studio caller as a single message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StudioValidationError(StudioError):
    """Raised before any remote call when a job description is incomplete."""


class EngineError(StudioError):
    """Raised by a generation engine when a remote call fails for any reason."""


class UploadError(StudioError):
    """Raised when an uploaded file cannot be read or decoded as an image."""
