"""Console rendering and progress helpers for blob_uploader CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional
import time

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import BatchResult, UploadJob


console = Console()


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]blob-up[/bold green]",
        subtitle="[dim]blob storage copy[/dim]",
        border_style="blue",
    )
    console.print(panel)


class BatchProgressDisplay:
    """Event-based console display: one timeline line per settled job."""

    def __init__(self, total_files: int, simulated: bool = False):
        self._total = total_files
        self._simulated = simulated
        self._done = 0
        self._failed = 0

    def _emit_timeline(self, status: str, job: UploadJob, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {"DONE": "green", "SKIP": "cyan", "FAIL": "red"}
        color = palette.get(status, "white")
        try:
            size_label = f" {_human_size(job.source_path.stat().st_size)}"
        except OSError:
            size_label = ""
        error_label = f" cause={error}" if error else ""
        counter = f"{self._done + self._failed}/{self._total}"
        console.print(
            f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {counter} "
            f"{job.filename} => {job.destination_key}{size_label}{error_label}",
            highlight=False,
        )

    def on_job_complete(self, job: UploadJob) -> None:
        self._done += 1
        self._emit_timeline("SKIP" if self._simulated else "DONE", job)

    def on_job_fail(self, job: UploadJob, error: BaseException) -> None:
        self._failed += 1
        self._emit_timeline("FAIL", job, str(error))

    def on_finish(self, result: BatchResult) -> None:
        if result.success:
            console.print(
                f"[green]blob storage copy completed ({result.succeeded}) files[/green]"
            )
            return
        console.print(
            f"[red]blob storage copy failed[/red] after {self._done} uploaded, "
            f"{self._failed} failed: {result.first_error}",
            highlight=False,
        )
