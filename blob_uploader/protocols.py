"""
Protocols (Interfaces) for Dependency Inversion.

The orchestration core only talks to storage through IStorageGateway.
"""
from pathlib import Path
from typing import Protocol, runtime_checkable

from .models import BlobMetadata, ContainerOptions


@runtime_checkable
class IStorageGateway(Protocol):
    """Interface for container lifecycle and blob upload."""

    async def delete_container(self, name: str, timeout_ms: int) -> None:
        """Delete a container."""
        ...

    async def create_container_if_absent(self, name: str, options: ContainerOptions) -> None:
        """
        Create a container unless it already exists.

        Raises ProvisioningTransientError while the container is being deleted,
        ProvisioningFatalError for anything else.
        """
        ...

    def blob_url(self, container: str, key: str) -> str:
        """Address of a blob inside a container."""
        ...

    async def upload_blob(self, url: str, local_path: Path, metadata: BlobMetadata) -> None:
        """Upload a local file to the given blob address. Raises UploadError."""
        ...
