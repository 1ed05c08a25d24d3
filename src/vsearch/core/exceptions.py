"""Exception hierarchy for vsearch."""


class VSError(Exception):
    """Base exception for all vsearch errors."""


class FFmpegError(VSError):
    """FFmpeg/ffprobe command failed."""

    def __init__(self, message: str, cmd: str | None = None, returncode: int | None = None):
        self.cmd = cmd
        self.returncode = returncode
        super().__init__(message)


class APIError(VSError):
    """Remote API call failed."""

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class CatalogError(VSError):
    """Catalog index could not be read or written."""


class IngestError(VSError):
    """Ingest pipeline error. Retryable: the video stays in the catalog with status 'error'."""


class SourceUnavailableError(IngestError):
    """The source video file is not present on this machine. Not retryable here."""


class VideoNotFoundError(VSError):
    """Video ID not found in the catalog."""
