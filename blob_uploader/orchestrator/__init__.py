"""Orchestrator package - batch upload coordination."""
from .core import BatchOrchestrator, run_batch
from .file_collector import FileCollector
from .parallel_upload import BoundedUploadPool

__all__ = ["BatchOrchestrator", "run_batch", "FileCollector", "BoundedUploadPool"]
