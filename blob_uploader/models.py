"""
Models for blob_uploader.

Frozen dataclasses for everything that crosses a stage boundary; only the
provisioning state is mutable.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError, ValidationError


DEFAULT_CACHE_CONTROL = "public, max-age=31556926"
DEFAULT_PROVISION_TIMEOUT_MS = 15000

ACCOUNT_ENV_VAR = "AZURE_STORAGE_ACCOUNT"
ACCESS_KEY_ENV_VAR = "AZURE_STORAGE_ACCESS_KEY"


@dataclass(frozen=True)
class StorageCredentials:
    """Storage account credentials, built once at process start."""
    account_name: str
    access_key: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StorageCredentials":
        env = os.environ if environ is None else environ
        account = env.get(ACCOUNT_ENV_VAR)
        key = env.get(ACCESS_KEY_ENV_VAR)
        missing = [
            name for name, value in ((ACCOUNT_ENV_VAR, account), (ACCESS_KEY_ENV_VAR, key))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"missing storage credentials: {', '.join(missing)} not set"
            )
        return cls(account_name=account, access_key=key)

    def __repr__(self) -> str:
        return f"StorageCredentials(account_name={self.account_name!r}, access_key='***')"


@dataclass(frozen=True)
class ContainerOptions:
    """Options applied when the container is created."""
    public_access_level: Optional[str] = "blob"
    timeout_interval_ms: Optional[int] = DEFAULT_PROVISION_TIMEOUT_MS

    @property
    def effective_timeout_ms(self) -> int:
        """Provisioning call timeout; unset or zero falls back to 15s."""
        return self.timeout_interval_ms or DEFAULT_PROVISION_TIMEOUT_MS

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ContainerOptions":
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"containerOptions must be an object, got {type(data).__name__}")
        timeout = data.get("timeoutIntervalInMs", DEFAULT_PROVISION_TIMEOUT_MS)
        try:
            timeout = int(timeout) if timeout is not None else None
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid timeoutIntervalInMs: {timeout!r}") from exc
        return cls(
            public_access_level=data.get("publicAccessLevel", "blob"),
            timeout_interval_ms=timeout,
        )


@dataclass(frozen=True)
class UploadOptions:
    """Immutable configuration for a batch upload."""
    container_name: str
    container_delete: bool = False
    container_options: ContainerOptions = field(default_factory=ContainerOptions)
    metadata: Dict[str, str] = field(
        default_factory=lambda: {"cacheControl": DEFAULT_CACHE_CONTROL}
    )
    copy_simulation: bool = False
    gzip: bool = False
    max_concurrent_uploads: int = 10
    max_provision_attempts: int = 10
    initial_wait_ms: int = 100
    retry_wait_ms: int = 10000
    delete_timeout_ms: int = 25000
    service_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.container_name:
            raise ConfigurationError("containerName is required")
        if self.max_concurrent_uploads < 1:
            raise ConfigurationError("maxNumberOfConcurrentUploads must be at least 1")
        if self.max_provision_attempts < 1:
            raise ConfigurationError("provisioning attempts must be at least 1")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UploadOptions":
        """Build options from the camelCase option names used in config files."""
        try:
            metadata = {"cacheControl": DEFAULT_CACHE_CONTROL}
            metadata.update(data.get("metadata") or {})
            concurrency = int(data.get("maxNumberOfConcurrentUploads", 10))
            service_options = dict(data.get("serviceOptions") or {})
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid upload options: {exc}") from exc
        return cls(
            container_name=data.get("containerName") or "",
            container_delete=bool(data.get("containerDelete", False)),
            container_options=ContainerOptions.from_mapping(data.get("containerOptions")),
            metadata=metadata,
            copy_simulation=bool(data.get("copySimulation", False)),
            gzip=bool(data.get("gzip", False)),
            max_concurrent_uploads=concurrency,
            service_options=service_options,
        )


@dataclass(frozen=True)
class FileMapping:
    """One entry of the input file list, before validation."""
    src: Tuple[str, ...]
    dest: Optional[str]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FileMapping":
        """
        Raises:
            ValidationError: entry is not an object, or src is not a path or list of paths
        """
        if not isinstance(data, Mapping):
            raise ValidationError(
                f"File mapping must be an object with 'src' and 'dest', got {data!r}"
            )
        src = data.get("src") or ()
        if isinstance(src, (str, Path)):
            src = (src,)
        if not isinstance(src, (list, tuple)):
            raise ValidationError(f"File mapping 'src' must be a path or a list of paths, got {src!r}")
        return cls(src=tuple(str(s) for s in src), dest=data.get("dest"))


@dataclass(frozen=True)
class BlobMetadata:
    """Blob properties and custom metadata sent with an upload."""
    content_type: Optional[str] = None
    content_type_header: Optional[str] = None
    content_encoding: Optional[str] = None
    cache_control: Optional[str] = None
    content_language: Optional[str] = None
    content_disposition: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Optional[str]]:
        data = dict(self.extra)
        data.update({
            "contentType": self.content_type,
            "contentTypeHeader": self.content_type_header,
            "contentEncoding": self.content_encoding,
            "cacheControl": self.cache_control,
        })
        if self.content_language:
            data["contentLanguage"] = self.content_language
        if self.content_disposition:
            data["contentDisposition"] = self.content_disposition
        return data


@dataclass(frozen=True)
class UploadJob:
    """A single validated source file bound to a destination key."""
    source_path: Path
    destination_key: str
    metadata: BlobMetadata
    compress: bool = False

    @property
    def filename(self) -> str:
        return self.source_path.name


@dataclass
class ProvisionState:
    """Retry bookkeeping for one container provisioning call."""
    max_attempts: int
    wait_ms: int
    attempt_count: int = 0
    completed: bool = False

    @property
    def can_continue(self) -> bool:
        return self.attempt_count < self.max_attempts and not self.completed


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a whole batch."""
    total_files: int
    succeeded: int
    first_error: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.first_error is None and self.succeeded == self.total_files

    @classmethod
    def ok(cls, total_files: int) -> "BatchResult":
        return cls(total_files=total_files, succeeded=total_files)

    @classmethod
    def fail(cls, total_files: int, error: BaseException, succeeded: int = 0) -> "BatchResult":
        return cls(total_files=total_files, succeeded=succeeded, first_error=error)
