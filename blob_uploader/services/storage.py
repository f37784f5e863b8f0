"""
Storage Service - Single Responsibility: talk to Azure Blob Storage.

Adapts the async Azure SDK to the IStorageGateway protocol and translates SDK
errors into blob_uploader error kinds.
"""
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote
import logging

from azure.core.credentials import AzureNamedKeyCredential
from azure.core.exceptions import AzureError, HttpResponseError
from azure.storage.blob import ContentSettings, StorageErrorCode
from azure.storage.blob.aio import BlobClient, BlobServiceClient

from ..errors import ProvisioningFatalError, ProvisioningTransientError, UploadError
from ..models import BlobMetadata, ContainerOptions, StorageCredentials

logger = logging.getLogger(__name__)

PRIVATE_ACCESS_LEVELS = {"", "none", "private", "off"}


def _timeout_seconds(timeout_ms: int) -> int:
    return max(1, -(-int(timeout_ms) // 1000))


def _error_code(exc: BaseException) -> Optional[str]:
    return getattr(exc, "error_code", None)


class AzureBlobGateway:
    """
    Azure Blob Storage adapter.

    Implements IStorageGateway protocol.

    Usage:
        async with AzureBlobGateway(credentials) as gateway:
            await gateway.create_container_if_absent("assets", ContainerOptions())
    """

    def __init__(
        self,
        credentials: StorageCredentials,
        account_url: Optional[str] = None,
        service_options: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize gateway.

        Args:
            credentials: Account name and access key
            account_url: Service endpoint (defaults to the public blob endpoint of the account)
            service_options: Extra keyword arguments for the service client
        """
        self._credential = AzureNamedKeyCredential(credentials.account_name, credentials.access_key)
        self._account_url = (
            account_url or f"https://{credentials.account_name}.blob.core.windows.net"
        ).rstrip("/")
        self._service_options = dict(service_options or {})
        self._service: Optional[BlobServiceClient] = None

    async def __aenter__(self):
        self._service = BlobServiceClient(
            self._account_url,
            credential=self._credential,
            **self._service_options,
        )
        return self

    async def __aexit__(self, *args):
        if self._service:
            await self._service.close()
            self._service = None

    @property
    def account_url(self) -> str:
        return self._account_url

    def _require_service(self) -> BlobServiceClient:
        if not self._service:
            raise RuntimeError("AzureBlobGateway not initialized. Use 'async with' context.")
        return self._service

    async def delete_container(self, name: str, timeout_ms: int) -> None:
        service = self._require_service()
        logger.debug(f"Deleting container {name} (timeout {timeout_ms}ms)")
        await service.delete_container(name, timeout=_timeout_seconds(timeout_ms))

    async def create_container_if_absent(self, name: str, options: ContainerOptions) -> None:
        """
        Create the container, treating "already exists" as success.

        Raises:
            ProvisioningTransientError: container is being deleted
            ProvisioningFatalError: any other service or transport error
        """
        service = self._require_service()
        access = options.public_access_level
        if access is not None and access.lower() in PRIVATE_ACCESS_LEVELS:
            access = None

        try:
            await service.get_container_client(name).create_container(
                public_access=access,
                timeout=_timeout_seconds(options.effective_timeout_ms),
            )
            logger.info(f"Created container '{name}'")
        except HttpResponseError as exc:
            code = _error_code(exc)
            if code == StorageErrorCode.CONTAINER_ALREADY_EXISTS:
                logger.debug(f"Container '{name}' already exists")
                return
            if code == StorageErrorCode.CONTAINER_BEING_DELETED:
                raise ProvisioningTransientError(
                    f"container '{name}' is being deleted"
                ) from exc
            raise ProvisioningFatalError(
                f"could not create container '{name}': {exc.message or exc}"
            ) from exc
        except AzureError as exc:
            raise ProvisioningFatalError(f"could not create container '{name}': {exc}") from exc

    def blob_url(self, container: str, key: str) -> str:
        return f"{self._account_url}/{quote(container)}/{quote(key.lstrip('/'))}"

    async def upload_blob(self, url: str, local_path: Path, metadata: BlobMetadata) -> None:
        content_settings = ContentSettings(
            content_type=metadata.content_type,
            content_encoding=metadata.content_encoding,
            cache_control=metadata.cache_control,
            content_language=metadata.content_language,
            content_disposition=metadata.content_disposition,
        )
        try:
            async with BlobClient.from_blob_url(
                url, credential=self._credential, **self._service_options
            ) as blob_client:
                with open(local_path, "rb") as data:
                    await blob_client.upload_blob(
                        data,
                        overwrite=True,
                        content_settings=content_settings,
                        metadata=metadata.extra or None,
                    )
        except (AzureError, OSError) as exc:
            logger.error(f"Upload of {local_path} to {url} failed: {exc}")
            raise UploadError(f"upload to {url} failed: {exc}", target=url) from exc
