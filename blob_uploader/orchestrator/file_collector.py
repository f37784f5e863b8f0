"""File mapping validation for batch uploads."""
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Union

from ..errors import ValidationError
from ..models import FileMapping, UploadJob, UploadOptions
from ..services.compressor import Compressor
from ..services.metadata_mapper import BlobMetadataMapper


class FileCollector:
    """Turns raw file mappings into upload jobs."""

    @staticmethod
    def to_mapping(entry: Union[FileMapping, Mapping[str, Any]]) -> FileMapping:
        if isinstance(entry, FileMapping):
            return entry
        return FileMapping.from_mapping(entry)

    @staticmethod
    def normalize_key(dest: Optional[str]) -> str:
        """Blob key for a destination: trimmed, without leading slashes."""
        if dest is None:
            return ""
        return str(dest).strip().lstrip("/")

    @classmethod
    def validate(cls, mapping: FileMapping) -> Path:
        """
        Check one mapping and return its source path.

        Raises:
            ValidationError: not exactly one source, an empty destination key,
                or a source that is not an existing regular file
        """
        if len(mapping.src) != 1:
            raise ValidationError(
                "File mapping must contain exactly one source to one destination "
                f"(got {len(mapping.src)} sources for dest={mapping.dest!r})"
            )
        if not cls.normalize_key(mapping.dest):
            raise ValidationError(
                f"File mapping for {mapping.src[0]} has no destination (dest={mapping.dest!r})"
            )

        source = Path(mapping.src[0])
        if not source.exists():
            raise ValidationError(f"source does not exist: {source}")
        if not source.is_file():
            raise ValidationError(f"source is not a regular file: {source}")
        return source

    @classmethod
    def build_jobs(
        cls,
        entries: Iterable[Union[FileMapping, Mapping[str, Any]]],
        options: UploadOptions,
    ) -> List[UploadJob]:
        """
        Validate every mapping, then build jobs in input order.

        Any invalid entry aborts the whole list.
        """
        compression = Compressor.SCHEME if options.gzip else None
        jobs = []
        for entry in entries:
            mapping = cls.to_mapping(entry)
            source = cls.validate(mapping)
            jobs.append(
                UploadJob(
                    source_path=source,
                    destination_key=cls.normalize_key(mapping.dest),
                    metadata=BlobMetadataMapper.build(source, options.metadata, compression),
                    compress=options.gzip,
                )
            )
        return jobs
