"""Public exceptions for the folio API."""

from __future__ import annotations


class FolioError(Exception):
    """Base class for all user-facing folio errors."""


class FolioValidationError(FolioError):
    """Raised when user-provided config or input data is invalid."""


class FolioArtifactError(FolioError):
    """Raised when artifact or checkpoint save/load operations fail."""


class FolioAPIError(FolioError):
    """Raised when the remote metadata API fails after retries or rejects credentials."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class FolioNotImplementedError(FolioError):
    """Raised by surfaces that are intentionally not implemented."""
