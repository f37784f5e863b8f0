"""
Provisioner Service - make sure the target container exists.

Retries only while the service reports the container as being deleted; the
wait before the first attempt is short and every later wait is long.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..errors import ProvisioningFatalError, ProvisioningTransientError
from ..models import ProvisionState, UploadOptions
from ..protocols import IStorageGateway
from ..utils.advisory import advisory

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class RetryingProvisioner:
    """
    Drives container creation through a bounded, two-tier backoff loop.

    Usage:
        provisioner = RetryingProvisioner(gateway)
        await provisioner.delete_container("assets", options)
        await provisioner.ensure_container("assets", options)
    """

    def __init__(self, gateway: Optional[IStorageGateway], sleep: Optional[Sleeper] = None):
        """
        Initialize provisioner.

        Args:
            gateway: Storage gateway (may be None when only simulating)
            sleep: Awaitable sleep used between attempts (asyncio.sleep by default)
        """
        self._gateway = gateway
        self._sleep = sleep or asyncio.sleep

    async def delete_container(self, name: str, options: UploadOptions) -> None:
        """Delete the container when configured to; failures are logged and ignored."""
        if not options.container_delete or options.copy_simulation:
            logger.info(f"Skipping delete of container [{name}]")
            return

        logger.info(f"Deleting container [{name}] ...")
        await advisory(
            f"Delete of container [{name}]",
            lambda: asyncio.wait_for(
                self._gateway.delete_container(name, options.delete_timeout_ms),
                options.delete_timeout_ms / 1000,
            ),
            log=logger,
        )

    async def ensure_container(self, name: str, options: UploadOptions) -> ProvisionState:
        """
        Create the container if absent.

        Returns:
            Final ProvisionState (completed=True)

        Raises:
            ProvisioningFatalError: non-retryable error, or attempts exhausted
        """
        state = ProvisionState(
            max_attempts=options.max_provision_attempts,
            wait_ms=options.initial_wait_ms,
        )
        logger.info(f"Create blob container [{name}] ...")

        if options.copy_simulation:
            state.completed = True
            logger.info(f"Container [{name}] ok (simulated)")
            return state

        timeout_s = options.container_options.effective_timeout_ms / 1000
        last_error: Optional[BaseException] = None
        while state.can_continue:
            state.attempt_count += 1
            await self._sleep(state.wait_ms / 1000)
            state.wait_ms = options.retry_wait_ms

            logger.debug(f"Create container [{name}] attempt {state.attempt_count}/{state.max_attempts}")
            try:
                await asyncio.wait_for(
                    self._gateway.create_container_if_absent(name, options.container_options),
                    timeout_s,
                )
            except ProvisioningTransientError as exc:
                last_error = exc
                logger.info(f"Container [{name}] is being deleted, retrying ({state.attempt_count}/{state.max_attempts})")
                continue
            except ProvisioningFatalError:
                logger.error(f"createContainer not completed for [{name}]")
                raise
            except asyncio.TimeoutError as exc:
                logger.error(f"createContainer for [{name}] timed out after {timeout_s:g}s")
                raise ProvisioningFatalError(
                    f"creating container '{name}' timed out after {timeout_s:g}s"
                ) from exc
            except Exception as exc:
                logger.error(f"createContainer not completed for [{name}]: {exc}")
                raise ProvisioningFatalError(f"could not create container '{name}': {exc}") from exc

            state.completed = True

        if not state.completed:
            logger.error(f"createContainer not completed for [{name}] after {state.attempt_count} attempts")
            raise ProvisioningFatalError(
                f"container '{name}' not created after {state.attempt_count} attempts"
            ) from last_error

        logger.info(f"Container [{name}] ok")
        return state
