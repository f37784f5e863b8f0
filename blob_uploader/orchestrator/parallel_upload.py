from pathlib import Path
from typing import List, Optional, Sequence
import asyncio
import logging

from ..errors import UploadError, UploaderError
from ..models import UploadJob, UploadOptions
from ..protocols import IStorageGateway
from ..services.compressor import Compressor, TempArtifact
from ..utils.events import JOB_COMPLETE, JOB_FAIL, EventEmitter
logger = logging.getLogger(__name__)


class BoundedUploadPool:
    """
    Uploads jobs with a sliding concurrency window.

    - Jobs are admitted in input order; the next one starts as soon as any
      in-flight job settles, never more than `concurrency_limit` at once.
    - The first failure stops admission. Jobs already running are awaited
      (not cancelled) and their outcomes ignored; then the failure is raised.
    """

    def __init__(
        self,
        gateway: Optional[IStorageGateway],
        options: UploadOptions,
        compressor: Optional[Compressor] = None,
        events: Optional[EventEmitter] = None,
    ):
        self._gateway = gateway
        self._options = options
        self._compressor = compressor or Compressor()
        self._events = events or EventEmitter()

    async def run(self, jobs: Sequence[UploadJob], concurrency_limit: Optional[int] = None) -> int:
        """
        Upload every job.

        Returns:
            Number of jobs (all succeeded)

        Raises:
            UploaderError: the first job failure observed
        """
        limit = concurrency_limit if concurrency_limit is not None else self._options.max_concurrent_uploads
        if limit < 1:
            raise ValueError(f"concurrency limit must be at least 1, got {limit}")

        total = len(jobs)
        logger.debug(f"Process ({total}) files, {limit} at a time")

        semaphore = asyncio.Semaphore(limit)
        failures: List[BaseException] = []
        tasks: List[asyncio.Task] = []

        def on_settled(task: asyncio.Task) -> None:
            semaphore.release()
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None and not failures:
                failures.append(exc)

        for index, job in enumerate(jobs, 1):
            await semaphore.acquire()
            if failures:
                semaphore.release()
                skipped = total - index + 1
                logger.warning(f"Upload failed, not starting remaining {skipped} file(s)")
                break
            task = asyncio.create_task(self._run_job(job, index, total))
            task.add_done_callback(on_settled)
            tasks.append(task)

        # Admitted jobs always run to completion.
        await asyncio.gather(*tasks, return_exceptions=True)

        if failures:
            raise failures[0]
        return total

    async def _run_job(self, job: UploadJob, index: int, total: int) -> None:
        container = self._options.container_name
        log_message = (
            f"[{index}/{total}] Copy {job.filename} => {container}/{job.destination_key}"
            f" - {job.metadata.content_type}"
        )

        if self._options.copy_simulation:
            logger.info(f"{log_message} skip copy ok")
            await self._events.emit(JOB_COMPLETE, job)
            return

        logger.debug(f"{log_message} metadata={job.metadata.as_dict()}")
        artifact: Optional[TempArtifact] = None
        try:
            source: Path = job.source_path
            if job.compress:
                artifact = await self._compressor.compress(source)
                source = artifact.path
            url = self._gateway.blob_url(container, job.destination_key)
            await self._gateway.upload_blob(url, source, job.metadata)
        except UploaderError as exc:
            logger.error(f"{log_message} failed: {exc}")
            await self._events.emit(JOB_FAIL, job, exc)
            raise
        except Exception as exc:
            logger.error(f"{log_message} failed: {exc}")
            error = UploadError(f"upload of {job.source_path} failed: {exc}", target=job.destination_key)
            await self._events.emit(JOB_FAIL, job, error)
            raise error from exc
        finally:
            if artifact is not None:
                artifact.discard()

        # Per-job progress is only logged once the job has fully completed.
        logger.info(f"{log_message} ok")
        await self._events.emit(JOB_COMPLETE, job)
