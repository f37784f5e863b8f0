"""Tests for BoundedUploadPool."""
import gzip
import logging
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from blob_uploader.errors import CompressionError, UploadError
from blob_uploader.models import UploadOptions
from blob_uploader.orchestrator.file_collector import FileCollector
from blob_uploader.orchestrator.parallel_upload import BoundedUploadPool
from blob_uploader.services.compressor import Compressor
from blob_uploader.utils.events import JOB_COMPLETE, JOB_FAIL, EventEmitter


def _jobs(mappings, **option_kwargs):
    options = UploadOptions(container_name="assets", **option_kwargs)
    return options, FileCollector.build_jobs(mappings, options)


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 3, 5])
async def test_never_exceeds_concurrency_limit(gateway, make_files, limit):
    options, jobs = _jobs(make_files(12))

    count = await BoundedUploadPool(gateway, options).run(jobs, limit)

    assert count == 12
    assert len(gateway.uploads) == 12
    assert gateway.high_water == limit


@pytest.mark.asyncio
async def test_default_limit_from_options(gateway, make_files):
    options, jobs = _jobs(make_files(6), max_concurrent_uploads=2)

    await BoundedUploadPool(gateway, options).run(jobs)

    assert gateway.high_water == 2


@pytest.mark.asyncio
async def test_empty_job_list(gateway):
    options = UploadOptions(container_name="assets")

    assert await BoundedUploadPool(gateway, options).run([], 4) == 0
    assert gateway.call_count == 0


@pytest.mark.asyncio
async def test_invalid_limit(gateway):
    options = UploadOptions(container_name="assets")

    with pytest.raises(ValueError):
        await BoundedUploadPool(gateway, options).run([], 0)


@pytest.mark.asyncio
async def test_first_failure_stops_admission(gateway, make_files):
    options, jobs = _jobs(make_files(10))
    gateway.fail_keys = {"file1.txt"}

    with pytest.raises(UploadError, match="file1.txt"):
        await BoundedUploadPool(gateway, options).run(jobs, 2)

    # file1 fails while file0 is still uploading: file0 finishes, file2.. never start
    uploaded = [u.url.rsplit("/", 1)[-1] for u in gateway.uploads]
    assert uploaded == ["file0.txt"]
    assert len(gateway.failed_uploads) == 1
    assert gateway.active == 0


@pytest.mark.asyncio
async def test_in_flight_jobs_complete_after_failure(gateway, make_files):
    options, jobs = _jobs(make_files(4))
    gateway.fail_keys = {"file0.txt"}

    with pytest.raises(UploadError):
        await BoundedUploadPool(gateway, options).run(jobs, 4)

    assert len(gateway.uploads) == 3
    assert gateway.failed_uploads == ["https://acct.blob.core.windows.net/assets/site/file0.txt"]


@pytest.mark.asyncio
async def test_unexpected_gateway_error_wrapped(make_files):
    options, jobs = _jobs(make_files(1))
    gateway = AsyncMock()
    gateway.blob_url = lambda container, key: f"mem://{container}/{key}"
    gateway.upload_blob.side_effect = ConnectionError("socket closed")

    with pytest.raises(UploadError) as exc_info:
        await BoundedUploadPool(gateway, options).run(jobs, 1)

    assert isinstance(exc_info.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_gzip_uploads_artifact_and_deletes_it(gateway, make_files):
    options, jobs = _jobs(make_files(3, suffix=".js"), gzip=True)

    await BoundedUploadPool(gateway, options).run(jobs, 2)

    assert len(gateway.uploads) == 3
    for upload, job in zip(sorted(gateway.uploads, key=lambda u: u.url), jobs):
        assert upload.metadata.content_encoding == "gzip"
        assert upload.local_path != job.source_path
        assert gzip.decompress(upload.payload) == job.source_path.read_bytes()
        assert not upload.local_path.exists()


@pytest.mark.asyncio
async def test_gzip_artifact_deleted_when_upload_fails(gateway, make_files, monkeypatch):
    options, jobs = _jobs(make_files(1), gzip=True)
    gateway.fail_keys = {"file0.txt"}
    artifacts = []
    real_compress = Compressor.compress

    async def recording_compress(self, source):
        artifact = await real_compress(self, source)
        artifacts.append(artifact.path)
        return artifact

    monkeypatch.setattr(Compressor, "compress", recording_compress)

    with pytest.raises(UploadError):
        await BoundedUploadPool(gateway, options).run(jobs, 1)

    assert len(artifacts) == 1
    assert not artifacts[0].exists()


@pytest.mark.asyncio
async def test_compression_error_fails_job(gateway, make_files):
    options, jobs = _jobs(make_files(2), gzip=True)
    compressor = Compressor()
    compressor.compress = AsyncMock(side_effect=CompressionError("disk full"))

    with pytest.raises(CompressionError, match="disk full"):
        await BoundedUploadPool(gateway, options, compressor=compressor).run(jobs, 1)

    assert gateway.uploads == []


@pytest.mark.asyncio
async def test_without_gzip_uploads_source(gateway, make_files):
    options, jobs = _jobs(make_files(1))

    await BoundedUploadPool(gateway, options).run(jobs, 1)

    upload = gateway.uploads[0]
    assert upload.local_path == jobs[0].source_path
    assert upload.metadata.content_encoding is None
    assert upload.metadata.content_type == "text/plain"
    assert upload.metadata.cache_control == "public, max-age=31556926"


@pytest.mark.asyncio
async def test_simulation_never_touches_gateway(gateway, make_files):
    options, jobs = _jobs(make_files(5), copy_simulation=True, gzip=True)

    count = await BoundedUploadPool(gateway, options).run(jobs, 2)

    assert count == 5
    assert gateway.call_count == 0


@pytest.mark.asyncio
async def test_events_emitted_per_job(gateway, make_files):
    options, jobs = _jobs(make_files(3))
    gateway.fail_keys = {"file2.txt"}
    events = EventEmitter()
    completed, failed = [], []
    events.on(JOB_COMPLETE, completed.append)
    events.on(JOB_FAIL, lambda job, error: failed.append((job, error)))

    with pytest.raises(UploadError):
        await BoundedUploadPool(gateway, options, events=events).run(jobs, 3)

    assert sorted(j.destination_key for j in completed) == ["site/file0.txt", "site/file1.txt"]
    assert [j.destination_key for j, _ in failed] == ["site/file2.txt"]
    assert isinstance(failed[0][1], UploadError)


@pytest.mark.asyncio
async def test_sliding_window_admits_next_job_while_slow_job_runs(gateway, make_files):
    options, jobs = _jobs(make_files(6))
    gateway.key_delays = {"file0.txt": 0.3}

    await BoundedUploadPool(gateway, options).run(jobs, 2)

    timeline = gateway.timeline
    # every other job flows through the second slot while file0 is still uploading
    assert timeline.index(("start", "file5.txt")) < timeline.index(("end", "file0.txt"))
    assert gateway.high_water == 2


@pytest.mark.asyncio
async def test_debug_log_includes_blob_metadata(gateway, make_files, caplog):
    options, jobs = _jobs(make_files(1, suffix=".css"), gzip=True)

    with caplog.at_level(logging.DEBUG, logger="blob_uploader.orchestrator.parallel_upload"):
        await BoundedUploadPool(gateway, options).run(jobs, 1)

    assert "'contentEncoding': 'gzip'" in caplog.text
    assert "'cacheControl': 'public, max-age=31556926'" in caplog.text
