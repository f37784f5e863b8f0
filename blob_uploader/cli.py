"""Command line interface for blob_uploader package."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dotenv import load_dotenv
from rich.logging import RichHandler

from . import __version__
from .cli_progress import BatchProgressDisplay, render_configuration_summary
from .errors import UploaderError
from .models import ACCOUNT_ENV_VAR, StorageCredentials, UploadOptions
from .orchestrator import run_batch


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _resolve_log_level(debug: bool, silent: bool, log_level: Optional[str]) -> Optional[int]:
    """Effective log level, or None when the run should stay silent."""
    if silent:
        return None
    if debug:
        return logging.DEBUG
    if log_level:
        return getattr(logging, log_level.upper(), logging.INFO)
    return None


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Route package logs through rich.

    Nothing is logged unless --debug or --log-level asks for it; the progress
    timeline is printed either way. Returns the effective mode for the summary.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    logging.disable(logging.NOTSET)

    level = _resolve_log_level(debug, silent, log_level)
    if level is None:
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    handler = RichHandler(markup=False, rich_tracebacks=True, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # The Azure SDK logs every HTTP request at INFO.
    logging.getLogger("azure").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _load_env_file(path: Path, override: bool = False) -> None:
    """Export KEY=VALUE pairs from a dotenv file; existing variables win unless override."""
    if not path.is_file():
        raise CLIError(f"env file not found: {path}")
    try:
        load_dotenv(path, override=override, encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.is_file() else None


def _load_config_file(path: Optional[Path]) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Read {"options": {...}, "files": [...]} from a JSON file."""
    if path is None:
        return {}, []
    if not path.is_file():
        raise CLIError(f"config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise CLIError(f"could not read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CLIError(f"config file {path} must contain a JSON object")

    options = data.get("options") or {}
    files = data.get("files") or []
    if not isinstance(options, dict) or not isinstance(files, list):
        raise CLIError(f"config file {path}: 'options' must be an object and 'files' a list")
    return dict(options), list(files)


def _apply_overrides(options: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    merged = dict(options)
    if args.container:
        merged["containerName"] = args.container
    if args.delete_container:
        merged["containerDelete"] = True
    if args.gzip:
        merged["gzip"] = True
    if args.dry_run:
        merged["copySimulation"] = True
    if args.concurrency is not None:
        merged["maxNumberOfConcurrentUploads"] = args.concurrency
    return merged


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blob-up",
        description="Copy local files to an Azure Blob Storage container.",
    )
    parser.add_argument(
        "config",
        nargs="?",
        type=Path,
        help='JSON file with {"options": {...}, "files": [{"src": [...], "dest": "..."}]}',
    )
    parser.add_argument(
        "-f",
        "--file",
        nargs=2,
        action="append",
        metavar=("SRC", "DEST"),
        default=[],
        help="Upload SRC to blob DEST (repeatable, appended after config files)",
    )
    parser.add_argument("-c", "--container", default=None, help="Target container name")
    parser.add_argument(
        "--delete-container",
        action="store_true",
        help="Delete the container before uploading",
    )
    parser.add_argument("-z", "--gzip", action="store_true", help="Gzip files before upload")
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Simulate the copy without any network calls",
    )
    parser.add_argument(
        "-j",
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of concurrent uploads (default 10)",
    )
    parser.add_argument(
        "--account-url",
        default=None,
        help="Blob service endpoint (default https://<account>.blob.core.windows.net)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"blob-up {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.config is None and not args.file:
        parser.print_help()
        return 0

    try:
        raw_options, files = _load_config_file(args.config)
        files.extend({"src": [src], "dest": dest} for src, dest in args.file)
        options = UploadOptions.from_mapping(_apply_overrides(raw_options, args))
        credentials = None if options.copy_simulation else StorageCredentials.from_env()
    except (CLIError, UploaderError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Container": options.container_name,
            "Account": credentials.account_name if credentials else os.getenv(ACCOUNT_ENV_VAR) or "-",
            "Files": len(files),
            "Delete Container": "yes" if options.container_delete else "no",
            "Gzip": "yes" if options.gzip else "no",
            "Simulation": "yes" if options.copy_simulation else "no",
            "Concurrency": options.max_concurrent_uploads,
            "Config": str(args.config) if args.config else "-",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    display = BatchProgressDisplay(len(files), simulated=options.copy_simulation)
    try:
        result = asyncio.run(
            run_batch(
                files,
                options,
                credentials=credentials,
                account_url=args.account_url,
                on_job_complete=display.on_job_complete,
                on_job_fail=display.on_job_fail,
            )
        )
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130

    display.on_finish(result)
    if result.success:
        return 0
    print(f"ERROR: {result.first_error}", file=sys.stderr)
    return 1


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
