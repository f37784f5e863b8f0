"""
Compressor Service - gzip a source file into a temporary artifact.

The artifact is owned by the job that created it and must be discarded once
the upload attempt is over.
"""
import asyncio
import gzip
import logging
import os
import shutil
import tempfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..errors import CompressionError
from ..utils.advisory import advisory_sync

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class TempArtifact:
    """Filesystem-backed compressed copy of a source file."""
    path: Path
    source: Path

    def discard(self) -> None:
        """Best-effort removal of the artifact."""
        advisory_sync(f"Removing temp artifact {self.path}", self.path.unlink, log=logger)


class Compressor:
    """
    Streams files through gzip into uniquely named temp files.

    Usage:
        artifact = await Compressor().compress(Path("site/app.js"))
        try:
            ...  # upload artifact.path
        finally:
            artifact.discard()
    """

    SCHEME = "gzip"

    def __init__(self, temp_dir: Optional[Path] = None, compresslevel: int = 6):
        self._temp_dir = temp_dir
        self._compresslevel = compresslevel

    async def compress(self, source: Path) -> TempArtifact:
        """
        Compress a file without blocking the event loop.

        Returns only once the output file is flushed and closed.

        Raises:
            CompressionError: reading, compressing or writing failed
        """
        return await asyncio.to_thread(self._compress_sync, Path(source))

    def _compress_sync(self, source: Path) -> TempArtifact:
        # mkstemp creates the file exclusively, so names never collide across jobs
        try:
            fd, name = tempfile.mkstemp(
                prefix="tmp-",
                suffix=source.suffix,
                dir=str(self._temp_dir) if self._temp_dir else None,
            )
        except OSError as exc:
            raise CompressionError(f"cannot allocate temp file for {source}: {exc}") from exc

        target = Path(name)
        try:
            with os.fdopen(fd, "wb") as raw, open(source, "rb") as src:
                with gzip.GzipFile(
                    filename=source.name,
                    mode="wb",
                    fileobj=raw,
                    compresslevel=self._compresslevel,
                ) as out:
                    shutil.copyfileobj(src, out, CHUNK_SIZE)
        except (OSError, zlib.error) as exc:
            advisory_sync(f"Removing partial artifact {target}", target.unlink, log=logger)
            raise CompressionError(f"gzip of {source} failed: {exc}") from exc

        logger.debug(f"Compressed {source} -> {target} ({target.stat().st_size} bytes)")
        return TempArtifact(path=target, source=source)
