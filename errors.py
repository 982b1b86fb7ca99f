"""Exception types shared by the export pipeline."""

from typing import Optional


class ExportError(Exception):
    """Base exception for export pipeline errors."""
    pass


class ConfigurationError(ExportError):
    """Missing or invalid configuration (no languages, no backend URL, bad values)."""
    pass


class BackendUnavailable(ExportError):
    """Exception for network, auth or HTTP failures talking to the content backend."""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        """
        Initialize backend error.

        Args:
            message: Human-readable error message
            url: Request URL that failed, if known
            status: HTTP status code, if a response was received
        """
        self.message = message
        self.url = url
        self.status = status
        super().__init__(message)

    def __str__(self) -> str:
        """String representation of error."""
        parts = [self.message]
        if self.status is not None:
            parts.append(f"status={self.status}")
        if self.url:
            parts.append(f"url={self.url}")
        return " ".join(parts)


class AssetDownloadFailure(ExportError):
    """A single asset could not be mirrored. Recorded and counted, never fatal."""

    def __init__(self, collection: str, record_id: str, filename: str, reason: str):
        self.collection = collection
        self.record_id = record_id
        self.filename = filename
        self.reason = reason
        super().__init__(f"{collection}/{record_id}/{filename}: {reason}")

    def to_dict(self) -> dict:
        """Serialize failure to dictionary."""
        return {
            'collection': self.collection,
            'record_id': self.record_id,
            'filename': self.filename,
            'reason': self.reason
        }


class RenderFailure(ExportError):
    """A template raised while rendering a page. Aborts the build."""

    def __init__(self, page: str, cause: Exception):
        self.page = page
        self.cause = cause
        super().__init__(f"Failed to render {page}: {cause}")


class StyleBuildError(ExportError):
    """The external stylesheet tool failed or could not be started."""
    pass


__all__ = [
    'ExportError',
    'ConfigurationError',
    'BackendUnavailable',
    'AssetDownloadFailure',
    'RenderFailure',
    'StyleBuildError'
]
