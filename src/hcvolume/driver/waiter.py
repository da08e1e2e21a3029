"""Blocking wait for control-plane actions."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from hcvolume.api.errors import ActionFailedError, ActionTimeoutError
from hcvolume.interfaces import ActionWaiting
from hcvolume.logging_schema import LogEvent
from hcvolume.metrics import HCVOLUME_ACTION_WAIT_DURATION
from hcvolume.models import Action, ActionStatus

if TYPE_CHECKING:
    from hcvolume.infra.hcloud import ActionAPI

logger = logging.getLogger(__name__)


class ActionWaiter(ActionWaiting):
    """Turns asynchronous actions into sequential steps by polling.

    No deadline is applied unless one is passed to wait() or configured as
    default_timeout. Cancelling the waiting task stops polling; the remote
    action itself keeps running.
    """

    def __init__(
        self,
        actions: ActionAPI,
        poll_interval: float = 0.5,
        default_timeout: float | None = None,
    ) -> None:
        self._actions = actions
        self._poll_interval = poll_interval
        self._default_timeout = default_timeout

    async def wait(self, action: Action, timeout: float | None = None) -> None:
        timeout = timeout if timeout is not None else self._default_timeout
        started = time.monotonic()
        try:
            async with asyncio.timeout(timeout):
                final = await self._poll(action)
        except TimeoutError:
            raise ActionTimeoutError(
                f"action {action.id} ({action.command}) still running after {timeout:g}s"
            ) from None
        finally:
            HCVOLUME_ACTION_WAIT_DURATION.labels(command=action.command or "unknown").observe(
                time.monotonic() - started
            )

        if final.status == ActionStatus.ERROR:
            error = final.error
            message = f"{error.message} ({error.code})" if error else "unknown error"
            logger.warning(
                "Action failed",
                extra={
                    "event": LogEvent.ACTION_FAILED,
                    "action_id": final.id,
                    "command": final.command,
                    "error": message,
                },
            )
            raise ActionFailedError(f"action {final.id} ({final.command}) failed: {message}")

        logger.debug(
            "Action completed",
            extra={"event": LogEvent.ACTION_COMPLETED, "action_id": final.id, "command": final.command},
        )

    async def _poll(self, action: Action) -> Action:
        current = action
        while not current.is_terminal:
            await asyncio.sleep(self._poll_interval)
            current = await self._actions.get(action.id)
        return current
