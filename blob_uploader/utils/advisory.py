"""Helpers for operations whose failure must not fail the caller."""
from typing import Awaitable, Callable, Optional, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def advisory(
    description: str,
    operation: Callable[[], Awaitable[T]],
    log: Optional[logging.Logger] = None,
) -> Optional[T]:
    """
    Await an advisory operation, logging and discarding any error.

    Args:
        description: Human readable name used in the warning
        operation: Zero-argument callable returning the awaitable to run
        log: Logger to report on (defaults to this module's)

    Returns:
        The operation's result, or None when it failed
    """
    try:
        return await operation()
    except Exception as exc:
        (log or logger).warning(f"{description} failed (ignored): {exc}")
        return None


def advisory_sync(
    description: str,
    operation: Callable[[], T],
    log: Optional[logging.Logger] = None,
) -> Optional[T]:
    """Synchronous counterpart of advisory()."""
    try:
        return operation()
    except Exception as exc:
        (log or logger).warning(f"{description} failed (ignored): {exc}")
        return None
