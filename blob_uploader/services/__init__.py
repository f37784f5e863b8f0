"""Services for blob_uploader."""
from .compressor import Compressor, TempArtifact
from .metadata_mapper import BlobMetadataMapper
from .provisioner import RetryingProvisioner
from .storage import AzureBlobGateway

__all__ = [
    "AzureBlobGateway",
    "BlobMetadataMapper",
    "Compressor",
    "RetryingProvisioner",
    "TempArtifact",
]
