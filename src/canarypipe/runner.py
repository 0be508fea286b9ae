"""Pipeline runner: drives a pipeline's stages to a terminal run state.

Run states: NOT_STARTED → RUNNING → {SUCCEEDED, FAILED, CANCELLED}.

Stages run strictly one after another. Each stage's executor runs as an
asyncio task raced against:

- the stage deadline (``timeout``; 0 means none) → FAILED (StageTimeoutError)
- the run's cancellation signal (``cancel()``) → CANCELLED (CancellationError)

The losing executor task is cancelled and awaited, so its background work
(analysis samplers, pending approvals) is stopped before the runner moves
on. A FAILED or CANCELLED stage ends the run in that state; when every
stage succeeds the run SUCCEEDED.

Configuration problems are raised as ConfigurationError from ``run()``
before any stage starts. Every other error is captured in the stage's
StageResult.

Example:
    >>> runner = PipelineRunner(pipeline, PluginSet(k8s=plugin, providers={"prom": prom}))
    >>> result = await runner.run()
    >>> result.status
    <StageStatus.SUCCEEDED: 'SUCCEEDED'>
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone

import structlog
from opentelemetry.trace import Status, StatusCode
from structlog.contextvars import bound_contextvars

from canarypipe.config import RunnerSettings, get_settings
from canarypipe.errors import AdapterError, CancellationError, ConfigurationError, StageTimeoutError
from canarypipe.executors.approval import ApprovalBroker
from canarypipe.executors.base import StageContext
from canarypipe.plugins import PluginSet
from canarypipe.registry import get_stage_definition
from canarypipe.schemas.options import AnalysisTemplateSpec, Variant
from canarypipe.schemas.pipeline import AppPipeline, PipelineStage
from canarypipe.schemas.results import PipelineRunResult, StageResult, StageStatus, StageVerdict
from canarypipe.telemetry.sanitization import sanitize_error_message
from canarypipe.telemetry.tracing import create_span
from canarypipe.validation import ValidationIssue, ensure_valid

logger = structlog.get_logger(__name__)


def _verdict_from_error(error: BaseException) -> StageVerdict:
    """Turn an exception escaping an executor into a terminal verdict."""
    if isinstance(error, asyncio.CancelledError):
        return StageVerdict(
            status=StageStatus.CANCELLED,
            error=str(CancellationError()),
            error_type=CancellationError.__name__,
        )
    details: dict[str, object] = {}
    if isinstance(error, AdapterError) and error.logs:
        details["logs"] = list(error.logs)
    return StageVerdict(
        status=StageStatus.FAILED,
        error=sanitize_error_message(str(error)),
        error_type=type(error).__name__,
        details=details,
    )


class PipelineRunner:
    """Runs one pipeline once.

    Args:
        pipeline: Decoded pipeline to run.
        plugins: Plugins the stages call out to.
        settings: Runner settings (defaults to the process settings).
        approvals: Broker that approval events are submitted to; one is
            created when not given.
        workspace: Terraform workspace of the application.
        templates: Analysis templates referenced by ``useTemplate``.

    Attributes:
        run_id: Identifier bound to every log line of the run through
            structlog contextvars.
    """

    def __init__(
        self,
        pipeline: AppPipeline,
        plugins: PluginSet | None = None,
        *,
        settings: RunnerSettings | None = None,
        approvals: ApprovalBroker | None = None,
        workspace: str = "",
        templates: AnalysisTemplateSpec | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._plugins = plugins or PluginSet()
        self._settings = settings or get_settings()
        self._approvals = approvals or ApprovalBroker()
        self._workspace = workspace
        self._templates = templates

        self.run_id = uuid.uuid4().hex
        self._status = StageStatus.NOT_STARTED
        self._results: list[StageResult] = []
        self._cancel_event = asyncio.Event()

    @property
    def status(self) -> StageStatus:
        """Current run state."""
        return self._status

    @property
    def approvals(self) -> ApprovalBroker:
        """Broker to submit approval events to."""
        return self._approvals

    @property
    def results(self) -> list[StageResult]:
        """Results of the stages finished so far."""
        return list(self._results)

    def cancel(self) -> None:
        """Request cancellation of the run.

        The active stage is stopped and reported CANCELLED; no further
        stage starts. Has no effect once the run is terminal.
        """
        if self._status.is_terminal:
            return
        logger.info("pipeline_cancel_requested", run_id=self.run_id)
        self._cancel_event.set()

    def check_plugins(self) -> list[ValidationIssue]:
        """Report stages whose required plugin is missing from the PluginSet."""
        issues = []
        for index, stage in enumerate(self._pipeline.stages):
            required = get_stage_definition(stage.name).plugin
            if required is not None and getattr(self._plugins, required) is None:
                issues.append(
                    ValidationIssue(
                        stage_index=index,
                        stage_name=stage.name.value,
                        message=f"requires a {required} plugin but none is configured",
                    )
                )
        return issues

    async def run(self) -> PipelineRunResult:
        """Run every stage in order.

        Returns:
            The terminal run result.

        Raises:
            RuntimeError: If this runner has already run.
            ConfigurationError: If the pipeline is invalid or a required
                plugin is missing. No stage is started.
        """
        if self._status is not StageStatus.NOT_STARTED:
            raise RuntimeError(f"pipeline runner already {self._status.value.lower()}")

        ensure_valid(self._pipeline, templates=self._templates)
        plugin_issues = self.check_plugins()
        if plugin_issues:
            raise ConfigurationError("pipeline cannot run", issues=plugin_issues)

        self._status = StageStatus.RUNNING
        live_variants: set[Variant] = {Variant.PRIMARY}
        error: str | None = None
        stages = self._pipeline.stages

        with bound_contextvars(run_id=self.run_id):
            with create_span(
                "canarypipe.run",
                attributes={"canarypipe.run_id": self.run_id, "canarypipe.stages": len(stages)},
            ) as span:
                logger.info("pipeline_started", stages=len(stages))
                try:
                    for index, stage in enumerate(stages):
                        if self._cancel_event.is_set():
                            self._status = StageStatus.CANCELLED
                            error = str(CancellationError())
                            break

                        result = await self._run_stage(index, stage, live_variants)
                        self._results.append(result)
                        if result.status is not StageStatus.SUCCEEDED:
                            self._status = result.status
                            error = result.error
                            break
                    else:
                        self._status = StageStatus.SUCCEEDED
                except asyncio.CancelledError:
                    self._status = StageStatus.CANCELLED
                    logger.info("pipeline_cancelled", completed_stages=len(self._results))
                    raise

                span.set_attribute("canarypipe.run.status", self._status.value)
                if self._status is StageStatus.FAILED:
                    span.set_status(Status(StatusCode.ERROR, error or "stage failed"))
                logger.info(
                    "pipeline_finished",
                    status=self._status.value,
                    completed_stages=len(self._results),
                    error=error,
                )

        return PipelineRunResult(status=self._status, stages=list(self._results), error=error)

    async def _run_stage(
        self,
        index: int,
        stage: PipelineStage,
        live_variants: set[Variant],
    ) -> StageResult:
        definition = get_stage_definition(stage.name)
        ctx = StageContext(
            pipeline=self._pipeline,
            stage_index=index,
            plugins=self._plugins,
            settings=self._settings,
            approvals=self._approvals,
            live_variants=live_variants,
            workspace=self._workspace,
            templates=self._templates,
        )
        executor = definition.executor_cls(ctx)
        timeout = stage.timeout.total_seconds()
        stage_logger = logger.bind(stage_index=index, stage_name=stage.name.value)

        started_at = datetime.now(timezone.utc)
        with create_span(
            "canarypipe.stage",
            attributes={
                "canarypipe.stage.index": index,
                "canarypipe.stage.name": stage.name.value,
                "canarypipe.stage.timeout_s": timeout,
            },
        ) as span:
            stage_logger.info("stage_started", desc=stage.desc, timeout_s=timeout)

            task = asyncio.create_task(executor.execute(), name=f"stage-{index}-{stage.name.value}")
            cancelled = asyncio.create_task(self._cancel_event.wait())
            try:
                done, _ = await asyncio.wait(
                    {task, cancelled},
                    timeout=timeout if timeout > 0 else None,
                    return_when=asyncio.FIRST_COMPLETED,
                )
            except asyncio.CancelledError:
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                raise
            finally:
                cancelled.cancel()

            if task in done:
                exc = task.exception() if not task.cancelled() else asyncio.CancelledError()
                verdict = task.result() if exc is None else _verdict_from_error(exc)
            else:
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                if cancelled in done:
                    err: Exception = CancellationError(stage.name.value)
                    status = StageStatus.CANCELLED
                else:
                    err = StageTimeoutError(stage.name.value, timeout)
                    status = StageStatus.FAILED
                verdict = StageVerdict(status=status, error=str(err), error_type=type(err).__name__)

            span.set_attribute("canarypipe.stage.status", verdict.status.value)
            if verdict.status is StageStatus.FAILED:
                span.set_status(Status(StatusCode.ERROR, verdict.error or "stage failed"))

        finished_at = datetime.now(timezone.utc)
        result = StageResult(
            index=index,
            name=stage.name,
            desc=stage.desc,
            status=verdict.status,
            error=verdict.error,
            error_type=verdict.error_type,
            details=verdict.details,
            started_at=started_at,
            finished_at=finished_at,
        )
        log = stage_logger.info if verdict.status is StageStatus.SUCCEEDED else stage_logger.warning
        log(
            "stage_finished",
            status=verdict.status.value,
            duration_ms=result.duration_ms,
            error=verdict.error,
            error_type=verdict.error_type,
        )
        return result


__all__ = ["PipelineRunner"]
