"""Core orchestrator - validate, provision, upload, aggregate."""
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union
import logging

from ..errors import UploaderError
from ..models import BatchResult, FileMapping, StorageCredentials, UploadOptions
from ..protocols import IStorageGateway
from ..services.compressor import Compressor
from ..services.provisioner import RetryingProvisioner, Sleeper
from ..services.storage import AzureBlobGateway
from ..utils.events import JOB_COMPLETE, JOB_FAIL, EventEmitter
from .file_collector import FileCollector
from .parallel_upload import BoundedUploadPool

logger = logging.getLogger(__name__)

FileEntry = Union[FileMapping, Mapping[str, Any]]


class BatchOrchestrator:
    """
    Orchestrates a batch upload using injected services.

    Stages run strictly in order and any stage failure aborts the rest:
    validate mappings -> optional container delete -> provision container ->
    bounded upload pool -> result.

    Usage:
        # Gateway built from credentials
        async with BatchOrchestrator(options, credentials=creds) as orchestrator:
            result = await orchestrator.execute(files)

        # Injected gateway (tests, other backends)
        orchestrator = BatchOrchestrator(options, gateway=fake_gateway)
        result = await orchestrator.execute(files)
    """

    def __init__(
        self,
        options: UploadOptions,
        credentials: Optional[StorageCredentials] = None,
        gateway: Optional[IStorageGateway] = None,
        account_url: Optional[str] = None,
        compressor: Optional[Compressor] = None,
        sleep: Optional[Sleeper] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            options: Batch options
            credentials: Used to build the Azure gateway when none is injected
                (read from the environment if omitted)
            gateway: Pre-built storage gateway
            account_url: Blob service endpoint override for the built gateway
            compressor: Compressor used when gzip is enabled
            sleep: Awaitable sleep for the provisioning backoff
        """
        self._options = options
        self._credentials = credentials
        self._gateway = gateway
        self._account_url = account_url
        self._compressor = compressor or Compressor()
        self._sleep = sleep
        self._events = EventEmitter()
        self._owned_gateway: Optional[AzureBlobGateway] = None

    async def __aenter__(self):
        """Build the Azure gateway unless one was injected or the run is simulated."""
        if self._gateway is None and not self._options.copy_simulation:
            credentials = self._credentials or StorageCredentials.from_env()
            self._owned_gateway = AzureBlobGateway(
                credentials,
                account_url=self._account_url,
                service_options=self._options.service_options,
            )
            await self._owned_gateway.__aenter__()
            self._gateway = self._owned_gateway
        return self

    async def __aexit__(self, *args):
        """Cleanup resources."""
        if self._owned_gateway:
            await self._owned_gateway.__aexit__(*args)
            self._owned_gateway = None
            self._gateway = None

    def on_job_complete(self, callback: Callable) -> None:
        self._events.on(JOB_COMPLETE, callback)

    def on_job_fail(self, callback: Callable) -> None:
        self._events.on(JOB_FAIL, callback)

    async def execute(self, file_list: Sequence[FileEntry]) -> BatchResult:
        """
        Run the whole batch.

        Returns:
            BatchResult with succeeded == total_files

        Raises:
            UploaderError: the error of the first failing stage
        """
        options = self._options
        name = options.container_name

        if self._gateway is None and not options.copy_simulation:
            raise RuntimeError("BatchOrchestrator has no gateway. Use 'async with' context or inject one.")

        provisioner = RetryingProvisioner(self._gateway, sleep=self._sleep)
        pool = BoundedUploadPool(self._gateway, options, self._compressor, self._events)

        try:
            jobs = FileCollector.build_jobs(file_list, options)
            await provisioner.delete_container(name, options)
            await provisioner.ensure_container(name, options)
            count = await pool.run(jobs, options.max_concurrent_uploads)
        except UploaderError:
            logger.error(f"Error processing container [{name}]")
            raise

        logger.info(f"Blob storage copy completed ({count}) files")
        return BatchResult.ok(count)


async def run_batch(
    file_list: Iterable[FileEntry],
    options: UploadOptions,
    credentials: Optional[StorageCredentials] = None,
    account_url: Optional[str] = None,
    on_job_complete: Optional[Callable] = None,
    on_job_fail: Optional[Callable] = None,
) -> BatchResult:
    """
    Execute a batch against Azure and fold any failure into the result.

    Never raises UploaderError; a failed batch has `first_error` set.
    """
    entries = list(file_list)
    try:
        async with BatchOrchestrator(options, credentials=credentials, account_url=account_url) as orchestrator:
            if on_job_complete:
                orchestrator.on_job_complete(on_job_complete)
            if on_job_fail:
                orchestrator.on_job_fail(on_job_fail)
            return await orchestrator.execute(entries)
    except UploaderError as exc:
        return BatchResult.fail(len(entries), exc)
