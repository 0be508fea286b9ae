"""Analysis evaluator: the gating state machine of an ANALYSIS stage.

States: RUNNING → {SUCCEEDED, FAILED}, or CANCELLED when the enclosing
pipeline is cancelled. There is no re-entry; an evaluator runs once.

While RUNNING, every configured metrics/log/HTTP check samples on its own
interval, concurrently with the others, and a restart sampler polls the
container restart count. All samplers report into a single pair of
counters guarded by an asyncio.Lock:

- failed checks: incremented once per failed evaluation of any check. A
  provider error, an unknown provider or a query exceeding its timeout is
  one failed check, never a distinct outcome.
- restarts: restarts observed since the first restart poll.

After every sample, ``failed > threshold`` or ``restarts >
restart_threshold`` ends the analysis as FAILED at once. Both comparisons
are strict: reaching a threshold exactly still passes. If the analysis
duration elapses with neither exceeded, the result is SUCCEEDED.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from functools import partial

import structlog
from pydantic import BaseModel, ConfigDict

from canarypipe.analysis.http import DEFAULT_PROVIDER_NAME as HTTP_PROVIDER_NAME
from canarypipe.analysis.scheduler import SamplerScheduler
from canarypipe.config import RunnerSettings, get_settings
from canarypipe.errors import AdapterError, ThresholdExceededError
from canarypipe.plugins.analysis import AnalysisProvider
from canarypipe.schemas.options import (
    AnalysisCheck,
    AnalysisHTTP,
    AnalysisLog,
    AnalysisMetrics,
    AnalysisStageOptions,
)
from canarypipe.telemetry.sanitization import sanitize_error_message
from canarypipe.telemetry.tracing import create_span

logger = structlog.get_logger(__name__)

RestartSource = Callable[[], Awaitable[int]]


class AnalysisState(str, Enum):
    """State of an analysis run."""

    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class AnalysisVerdict(BaseModel):
    """Outcome of an analysis run with the counts that produced it.

    Attributes:
        state: Terminal analysis state.
        failed_checks: Failed check evaluations.
        total_checks: All check evaluations.
        restarts: Container restarts observed.
        threshold: Configured failed-check threshold.
        restart_threshold: Configured restart threshold.
        reason: Why the analysis failed, if it did.
        last_error: Most recent provider error, if any.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    state: AnalysisState
    failed_checks: int = 0
    total_checks: int = 0
    restarts: int = 0
    threshold: int = 0
    restart_threshold: int = 0
    reason: str | None = None
    last_error: str | None = None

    def to_error(self) -> ThresholdExceededError:
        """The error describing a FAILED verdict."""
        return ThresholdExceededError(
            self.failed_checks, self.threshold, self.restarts, self.restart_threshold
        )


def _check_kind(check: AnalysisCheck) -> str:
    if isinstance(check, AnalysisMetrics):
        return "metrics"
    if isinstance(check, AnalysisLog):
        return "log"
    return "http"


async def _query(provider: AnalysisProvider, check: AnalysisCheck) -> bool:
    if isinstance(check, AnalysisMetrics):
        return await provider.query_metric(check)
    if isinstance(check, AnalysisLog):
        return await provider.query_log(check)
    if isinstance(check, AnalysisHTTP):
        return await provider.query_http(check)
    raise TypeError(f"unsupported analysis check: {type(check).__name__}")


class AnalysisEvaluator:
    """Runs the periodic checks of one ANALYSIS stage and decides pass/fail.

    Args:
        options: Analysis options with templates already resolved.
        providers: Analysis providers keyed by name.
        restart_source: Coroutine returning the cumulative restart count of
            the analysed workloads; None disables restart gating.
        settings: Runner settings for default intervals and timeouts.

    Example:
        >>> evaluator = AnalysisEvaluator(options, {"prometheus": prometheus})
        >>> verdict = await evaluator.run()
        >>> verdict.state
        <AnalysisState.SUCCEEDED: 'SUCCEEDED'>
    """

    def __init__(
        self,
        options: AnalysisStageOptions,
        providers: Mapping[str, AnalysisProvider],
        *,
        restart_source: RestartSource | None = None,
        settings: RunnerSettings | None = None,
    ) -> None:
        self._options = options
        self._providers = providers
        self._restart_source = restart_source
        self._settings = settings or get_settings()

        self._lock = asyncio.Lock()
        self._finished = asyncio.Event()
        self._state = AnalysisState.NOT_STARTED
        self._failed = 0
        self._total = 0
        self._restarts = 0
        self._restart_baseline: int | None = None
        self._reason: str | None = None
        self._last_error: str | None = None
        self._logger = logger.bind(
            threshold=options.threshold,
            restart_threshold=options.restart_threshold,
        )

    @property
    def state(self) -> AnalysisState:
        """Current analysis state."""
        return self._state

    @property
    def failed_checks(self) -> int:
        """Failed check evaluations so far."""
        return self._failed

    @property
    def restarts(self) -> int:
        """Restarts observed so far."""
        return self._restarts

    async def run(self) -> AnalysisVerdict:
        """Run the analysis window to a verdict.

        Returns:
            The terminal verdict (SUCCEEDED or FAILED).

        Raises:
            RuntimeError: If the evaluator has already been run.
            asyncio.CancelledError: If the enclosing task is cancelled. Every
                sampler is stopped before the cancellation propagates.
        """
        if self._state is not AnalysisState.NOT_STARTED:
            raise RuntimeError(f"analysis evaluator already {self._state.value.lower()}")
        self._state = AnalysisState.RUNNING

        duration = self._options.duration.total_seconds()
        samplers = SamplerScheduler()

        with create_span(
            "canarypipe.analysis",
            attributes={
                "canarypipe.analysis.duration_s": duration,
                "canarypipe.analysis.checks": len(self._options.checks),
                "canarypipe.analysis.threshold": self._options.threshold,
            },
        ) as span:
            self._logger.info(
                "analysis_started",
                duration_s=duration,
                checks=len(self._options.checks),
            )
            try:
                for index, check in enumerate(self._options.checks):
                    label = f"{_check_kind(check)}[{index}]"
                    sample = partial(self._sample, label, check)
                    samplers.start(label, sample, self._interval_of(check))
                if self._restart_source is not None:
                    samplers.start(
                        "restarts",
                        partial(self._sample_restarts, self._restart_source),
                        self._settings.restart_poll_interval.total_seconds(),
                        immediate=True,
                    )

                try:
                    await asyncio.wait_for(self._finished.wait(), timeout=max(duration, 0.0))
                except asyncio.TimeoutError:
                    async with self._lock:
                        if self._state is AnalysisState.RUNNING:
                            self._finish(AnalysisState.SUCCEEDED, None)
            except asyncio.CancelledError:
                self._state = AnalysisState.CANCELLED
                self._logger.info("analysis_cancelled", failed_checks=self._failed)
                raise
            finally:
                await samplers.stop_all()

            verdict = self._verdict()
            span.set_attribute("canarypipe.analysis.state", verdict.state.value)
            span.set_attribute("canarypipe.analysis.failed_checks", verdict.failed_checks)
            span.set_attribute("canarypipe.analysis.restarts", verdict.restarts)
            return verdict

    def _interval_of(self, check: AnalysisCheck) -> float:
        interval = check.interval.total_seconds()
        if interval <= 0:
            interval = self._settings.default_check_interval.total_seconds()
        return interval

    def _timeout_of(self, check: AnalysisCheck) -> float:
        timeout = check.timeout.total_seconds()
        if timeout <= 0:
            timeout = self._settings.default_query_timeout.total_seconds()
        return timeout

    async def _sample(self, label: str, check: AnalysisCheck) -> None:
        """Evaluate one check once and record the outcome."""
        timeout = self._timeout_of(check)
        error: str | None = None
        try:
            provider_name = check.provider
            if not provider_name and isinstance(check, AnalysisHTTP):
                provider_name = HTTP_PROVIDER_NAME
            provider = self._providers.get(provider_name)
            if provider is None:
                raise AdapterError(
                    f"query_{_check_kind(check)}",
                    f"unknown analysis provider: {provider_name!r}",
                )
            passed = await asyncio.wait_for(_query(provider, check), timeout=timeout)
        except asyncio.TimeoutError:
            passed = False
            error = f"{label} query timed out after {timeout:g}s"
        except Exception as e:
            # Any provider failure is one failed check.
            passed = False
            error = f"{label}: {e}"
        await self.record_check(label, passed, error)

    async def record_check(self, label: str, passed: bool, error: str | None = None) -> None:
        """Record one check evaluation and apply the failure threshold.

        Args:
            label: Which check was evaluated (e.g. "metrics[0]").
            passed: Whether the check passed.
            error: Provider error behind a failure, if any.
        """
        async with self._lock:
            if self._state is not AnalysisState.RUNNING:
                return
            self._total += 1
            if passed:
                self._logger.debug("analysis_check_passed", check=label)
                return

            self._failed += 1
            if error is not None:
                self._last_error = sanitize_error_message(error)
            self._logger.warning(
                "analysis_check_failed",
                check=label,
                failed_checks=self._failed,
                error=error,
            )
            if self._failed > self._options.threshold:
                self._finish(
                    AnalysisState.FAILED,
                    f"{self._failed} failed checks exceeded threshold {self._options.threshold}",
                )

    async def _sample_restarts(self, source: RestartSource) -> None:
        observed = await source()
        await self.record_restarts(observed)

    async def record_restarts(self, observed_total: int) -> None:
        """Record a cumulative restart count and apply the restart threshold.

        The first observation is the baseline; only restarts after it count.

        Args:
            observed_total: Cumulative restart count reported by the platform.
        """
        async with self._lock:
            if self._state is not AnalysisState.RUNNING:
                return
            if self._restart_baseline is None:
                self._restart_baseline = observed_total
                return
            restarts = max(self._restarts, observed_total - self._restart_baseline)
            if restarts == self._restarts:
                return
            self._restarts = restarts
            self._logger.warning("analysis_restarts_observed", restarts=restarts)
            if self._restarts > self._options.restart_threshold:
                self._finish(
                    AnalysisState.FAILED,
                    f"{self._restarts} container restarts exceeded threshold "
                    f"{self._options.restart_threshold}",
                )

    def _finish(self, state: AnalysisState, reason: str | None) -> None:
        """Move to a terminal state. Callers hold the lock."""
        self._state = state
        self._reason = reason
        self._finished.set()
        self._logger.info(
            "analysis_finished",
            state=state.value,
            failed_checks=self._failed,
            total_checks=self._total,
            restarts=self._restarts,
            reason=reason,
        )

    def _verdict(self) -> AnalysisVerdict:
        return AnalysisVerdict(
            state=self._state,
            failed_checks=self._failed,
            total_checks=self._total,
            restarts=self._restarts,
            threshold=self._options.threshold,
            restart_threshold=self._options.restart_threshold,
            reason=self._reason,
            last_error=self._last_error,
        )


__all__ = ["AnalysisEvaluator", "AnalysisState", "AnalysisVerdict", "RestartSource"]
