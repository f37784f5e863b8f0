"""Error types raised across blob_uploader stages."""
from typing import Optional


class UploaderError(RuntimeError):
    """Base class for every error that aborts or fails part of a batch."""


class ConfigurationError(UploaderError):
    """Options or credentials are missing or invalid."""


class ValidationError(UploaderError):
    """A file mapping is malformed; raised before any network activity."""


class ProvisioningTransientError(UploaderError):
    """The container is currently being deleted; the create call may be retried."""


class ProvisioningFatalError(UploaderError):
    """Container provisioning failed for good (non-retryable error or retries exhausted)."""


class CompressionError(UploaderError):
    """Compressing a source file failed; fails that job only."""


class UploadError(UploaderError):
    """The storage service rejected a blob upload."""

    def __init__(self, message: str, target: Optional[str] = None):
        super().__init__(message)
        self.target = target
