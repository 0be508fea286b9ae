"""WAIT stage executor."""

from __future__ import annotations

import asyncio

from canarypipe.executors.base import StageExecutor
from canarypipe.schemas.results import StageVerdict


class WaitExecutor(StageExecutor):
    """Sleeps for the configured duration, then succeeds.

    A WAIT stage never fails on its own; it ends early only through
    cancellation or its stage timeout.
    """

    async def execute(self) -> StageVerdict:
        seconds = self.options.duration.total_seconds()
        self._logger.info("wait_started", duration_s=seconds)
        await asyncio.sleep(max(seconds, 0.0))
        return self.succeeded(waited_s=seconds)


__all__ = ["WaitExecutor"]
