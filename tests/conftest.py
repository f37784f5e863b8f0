"""Shared fakes for blob_uploader tests."""
import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from blob_uploader.errors import UploadError
from blob_uploader.models import BlobMetadata, ContainerOptions


@dataclass
class RecordedUpload:
    url: str
    local_path: Path
    metadata: BlobMetadata
    payload: bytes


class FakeGateway:
    """In-memory IStorageGateway that records calls and concurrency."""

    def __init__(self, upload_delay: float = 0.01, fail_keys=(), create_effects=None):
        self.upload_delay = upload_delay
        self.key_delays: Dict[str, float] = {}
        self.create_delay = 0.0
        self.delete_delay = 0.0
        self.timeline: List[Tuple[str, str]] = []
        self.fail_keys = set(fail_keys)
        self.create_effects: List[Optional[BaseException]] = list(create_effects or [])
        self.delete_error: Optional[BaseException] = None
        self.deleted: List[str] = []
        self.created: List[str] = []
        self.uploads: List[RecordedUpload] = []
        self.failed_uploads: List[str] = []
        self.active = 0
        self.high_water = 0

    @property
    def call_count(self) -> int:
        return len(self.deleted) + len(self.created) + len(self.uploads) + len(self.failed_uploads)

    async def delete_container(self, name: str, timeout_ms: int) -> None:
        self.deleted.append(name)
        if self.delete_delay:
            await asyncio.sleep(self.delete_delay)
        if self.delete_error:
            raise self.delete_error

    async def create_container_if_absent(self, name: str, options: ContainerOptions) -> None:
        self.created.append(name)
        if self.create_delay:
            await asyncio.sleep(self.create_delay)
        if self.create_effects:
            effect = self.create_effects.pop(0)
            if effect is not None:
                raise effect

    def blob_url(self, container: str, key: str) -> str:
        return f"https://acct.blob.core.windows.net/{container}/{key}"

    async def upload_blob(self, url: str, local_path: Path, metadata: BlobMetadata) -> None:
        self.active += 1
        self.high_water = max(self.high_water, self.active)
        try:
            payload = Path(local_path).read_bytes()
            key = url.rsplit("/", 1)[-1]
            if key in self.fail_keys:
                # rejected uploads fail fast, while the others are still in flight
                await asyncio.sleep(0)
                self.failed_uploads.append(url)
                raise UploadError(f"rejected {url}", target=url)
            self.timeline.append(("start", key))
            await asyncio.sleep(self.key_delays.get(key, self.upload_delay))
            self.timeline.append(("end", key))
            self.uploads.append(RecordedUpload(url, Path(local_path), metadata, payload))
        finally:
            self.active -= 1


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def make_files(tmp_path):
    """Create `count` small source files and return their mappings."""

    def _make(count: int, suffix: str = ".txt", content: bytes = b"hello blob storage\n"):
        mappings = []
        for i in range(count):
            path = tmp_path / f"file{i}{suffix}"
            path.write_bytes(content * (i + 1))
            mappings.append({"src": [str(path)], "dest": f"site/file{i}{suffix}"})
        return mappings

    return _make
