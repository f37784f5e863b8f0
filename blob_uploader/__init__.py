"""
blob_uploader - Batch upload of local files to an Azure Blob Storage container.

Pipeline:
- Validate file mappings (one source, one destination each)
- Optionally delete, then idempotently create the container (bounded retries)
- Upload files through a bounded concurrency window, optionally gzipped
- Report one success/failure result for the whole batch

Usage:
    from blob_uploader import BatchOrchestrator, UploadOptions, StorageCredentials

    options = UploadOptions(container_name="assets", gzip=True)
    async with BatchOrchestrator(options, credentials=StorageCredentials.from_env()) as orchestrator:
        result = await orchestrator.execute([
            {"src": ["dist/app.js"], "dest": "js/app.js"},
        ])
        print(result.succeeded)
"""
from .errors import (
    CompressionError,
    ConfigurationError,
    ProvisioningFatalError,
    ProvisioningTransientError,
    UploadError,
    UploaderError,
    ValidationError,
)
from .models import (
    BatchResult,
    BlobMetadata,
    ContainerOptions,
    FileMapping,
    StorageCredentials,
    UploadJob,
    UploadOptions,
)
from .orchestrator import BatchOrchestrator, BoundedUploadPool, run_batch
from .protocols import IStorageGateway
from .services import AzureBlobGateway, Compressor, RetryingProvisioner

__version__ = "0.1.0"
__all__ = [
    # Main
    "BatchOrchestrator",
    "run_batch",
    # Models
    "BatchResult",
    "BlobMetadata",
    "ContainerOptions",
    "FileMapping",
    "StorageCredentials",
    "UploadJob",
    "UploadOptions",
    # Services
    "AzureBlobGateway",
    "BoundedUploadPool",
    "Compressor",
    "IStorageGateway",
    "RetryingProvisioner",
    # Errors
    "CompressionError",
    "ConfigurationError",
    "ProvisioningFatalError",
    "ProvisioningTransientError",
    "UploadError",
    "UploaderError",
    "ValidationError",
]
