"""Blob metadata mapping from configured defaults and per-file fields."""
from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..models import BlobMetadata


DEFAULT_CONTENT_TYPE = "application/octet-stream"

# config key -> BlobMetadata field; both spellings are accepted
_FIELD_KEYS = {
    "contentType": "content_type",
    "content_type": "content_type",
    "contentTypeHeader": "content_type_header",
    "content_type_header": "content_type_header",
    "contentEncoding": "content_encoding",
    "content_encoding": "content_encoding",
    "cacheControl": "cache_control",
    "cache_control": "cache_control",
    "contentLanguage": "content_language",
    "content_language": "content_language",
    "contentDisposition": "content_disposition",
    "content_disposition": "content_disposition",
}


class BlobMetadataMapper:
    """Builds per-file BlobMetadata."""

    @staticmethod
    def content_type_for(path: Path) -> str:
        guessed, _ = mimetypes.guess_type(str(path))
        return guessed or DEFAULT_CONTENT_TYPE

    @classmethod
    def split_defaults(cls, defaults: Optional[Mapping[str, Any]]) -> tuple[Dict[str, Any], Dict[str, str]]:
        """Separate known blob properties from custom metadata pairs."""
        fields: Dict[str, Any] = {}
        extra: Dict[str, str] = {}
        for key, value in (defaults or {}).items():
            if key in _FIELD_KEYS:
                fields[_FIELD_KEYS[key]] = value
            elif value is not None:
                extra[str(key)] = str(value)
        return fields, extra

    @classmethod
    def build(
        cls,
        source: Path,
        defaults: Optional[Mapping[str, Any]] = None,
        compression: Optional[str] = None,
    ) -> BlobMetadata:
        """
        Merge configured defaults with fields derived from the file.

        Per-file fields (content type, content encoding) win over defaults.
        """
        fields, extra = cls.split_defaults(defaults)
        content_type = cls.content_type_for(source)
        fields.update(
            content_type=content_type,
            content_type_header=content_type,
            content_encoding=compression,
        )
        return BlobMetadata(extra=extra, **fields)
