"""Periodic samplers for an analysis window.

Every analysis check, and the restart poll, is a sampler: an asyncio task
that awaits its sample coroutine, sleeps for the check's interval and
repeats. Samples of one sampler never overlap because the sleep starts
only after the sample returns. A sample that raises is logged and the
sampler carries on, so one broken check cannot silence the others.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

Sample = Callable[[], Awaitable[Any]]


class SamplerScheduler:
    """Owns the sampler tasks of one analysis run.

    Example:
        >>> samplers = SamplerScheduler()
        >>> samplers.start("metrics[0]", sample_error_rate, every=60.0)
        >>> "metrics[0]" in samplers
        True
        >>> await samplers.stop_all()
    """

    def __init__(self) -> None:
        self._samplers: dict[str, asyncio.Task[None]] = {}
        self._logger = logger.bind(component="sampler_scheduler")

    def __contains__(self, label: object) -> bool:
        return label in self._samplers

    @property
    def labels(self) -> list[str]:
        """Labels of the running samplers, in start order."""
        return list(self._samplers)

    def start(self, label: str, sample: Sample, every: float, *, immediate: bool = False) -> None:
        """Start sampling ``sample`` every ``every`` seconds under ``label``.

        A sampler already running under the same label is stopped first.

        Args:
            label: Name of the check, e.g. "metrics[0]".
            sample: Coroutine function taking one sample.
            every: Seconds between the end of one sample and the next.
            immediate: Take the first sample now rather than after ``every``.

        Raises:
            ValueError: If ``every`` is not positive.
        """
        if every <= 0:
            raise ValueError(f"sampling interval must be positive, got {every}")
        if label in self._samplers:
            self._logger.info("sampler_replaced", label=label)
            self.stop(label)

        self._samplers[label] = asyncio.create_task(
            self._loop(label, sample, every, immediate), name=f"sampler-{label}"
        )
        self._logger.debug("sampler_started", label=label, every_s=every, immediate=immediate)

    def _owns(self, label: str) -> bool:
        return self._samplers.get(label) is asyncio.current_task()

    async def _loop(self, label: str, sample: Sample, every: float, immediate: bool) -> None:
        # A sample may swallow the cancel meant for this task, so the loop
        # also ends once the label no longer maps to this task.
        if not immediate:
            await asyncio.sleep(every)
        while self._owns(label):
            try:
                await sample()
            except Exception as e:
                self._logger.error("sample_raised", label=label, error=str(e), exc_info=True)
            if not self._owns(label):
                break
            await asyncio.sleep(every)

    def stop(self, label: str) -> None:
        """Stop one sampler.

        Raises:
            KeyError: If nothing samples under ``label``.
        """
        try:
            task = self._samplers.pop(label)
        except KeyError:
            raise KeyError(f"no sampler running as {label!r}") from None
        task.cancel()

    async def stop_all(self) -> None:
        """Stop every sampler and wait for their tasks to finish."""
        tasks = list(self._samplers.values())
        for label in self.labels:
            self.stop(label)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


__all__ = ["Sample", "SamplerScheduler"]
