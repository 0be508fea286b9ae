"""Base StageExecutor ABC and the per-stage execution context.

Every stage kind has one executor class, registered in
canarypipe.registry. The runner instantiates a fresh executor for each
stage of each run and awaits ``execute()`` as an asyncio task that it
races against the stage deadline and the run's cancellation signal.

Executors report outcomes as a StageVerdict. Plugin failures are raised
as AdapterError through ``call_adapter()``; the runner turns any exception
an executor raises into a FAILED stage. Cancellation arrives as
asyncio.CancelledError, and executors stop their own background work in
``finally`` blocks before letting it propagate.

Example:
    Implementing an executor::

        class WaitExecutor(StageExecutor):
            async def execute(self) -> StageVerdict:
                await asyncio.sleep(self.options.duration.total_seconds())
                return self.succeeded()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from canarypipe.config import RunnerSettings
from canarypipe.errors import AdapterError
from canarypipe.plugins import PluginSet
from canarypipe.schemas.options import AnalysisTemplateSpec, Variant
from canarypipe.schemas.results import AdapterResult, StageStatus, StageVerdict
from canarypipe.telemetry.sanitization import sanitize_error_message

if TYPE_CHECKING:
    from canarypipe.executors.approval import ApprovalBroker
    from canarypipe.plugins.k8s import K8sDeployPlugin
    from canarypipe.plugins.terraform import TerraformPlugin
    from canarypipe.schemas.pipeline import AppPipeline, PipelineStage

logger = structlog.get_logger(__name__)


@dataclass
class StageContext:
    """Everything an executor may read or update while running one stage.

    ``live_variants`` is shared by every stage of a run: rollout and
    cleanup executors update it, traffic routing and analysis read it.

    Attributes:
        pipeline: The pipeline being run.
        stage_index: Position of the current stage.
        plugins: Plugins configured for the run.
        settings: Runner settings.
        approvals: Broker delivering approval events to WAIT_APPROVAL.
        live_variants: Variants currently deployed.
        workspace: Terraform workspace of the application.
        templates: Analysis templates available to ANALYSIS stages.
    """

    pipeline: AppPipeline
    stage_index: int
    plugins: PluginSet
    settings: RunnerSettings
    approvals: ApprovalBroker
    live_variants: set[Variant] = field(default_factory=lambda: {Variant.PRIMARY})
    workspace: str = ""
    templates: AnalysisTemplateSpec | None = None

    @property
    def stage(self) -> PipelineStage:
        """The stage being executed."""
        return self.pipeline.stages[self.stage_index]


class StageExecutor(ABC):
    """Abstract base class for stage executors.

    Abstract Methods:
        execute: Drive the stage to a terminal verdict.
    """

    def __init__(self, ctx: StageContext) -> None:
        self.ctx = ctx
        self._logger = logger.bind(
            stage_index=ctx.stage_index,
            stage_name=ctx.stage.name.value,
        )

    @property
    def stage(self) -> PipelineStage:
        """The stage being executed."""
        return self.ctx.stage

    @property
    def options(self) -> Any:
        """The stage's option payload."""
        return self.ctx.stage.options

    @property
    def k8s(self) -> K8sDeployPlugin:
        """The Kubernetes plugin (checked by the runner before the run)."""
        plugin = self.ctx.plugins.k8s
        if plugin is None:
            raise AdapterError("k8s", "no Kubernetes plugin is configured")
        return plugin

    @property
    def terraform(self) -> TerraformPlugin:
        """The Terraform plugin (checked by the runner before the run)."""
        plugin = self.ctx.plugins.terraform
        if plugin is None:
            raise AdapterError("terraform", "no Terraform plugin is configured")
        return plugin

    @abstractmethod
    async def execute(self) -> StageVerdict:
        """Run the stage to a terminal verdict.

        Returns:
            SUCCEEDED or FAILED verdict.

        Raises:
            AdapterError: If a plugin call fails.
            asyncio.CancelledError: If the run is cancelled or the stage
                deadline passes.
        """
        ...

    async def call_adapter(
        self,
        operation: str,
        call: Awaitable[AdapterResult],
    ) -> AdapterResult:
        """Await a plugin call, normalizing every failure to AdapterError.

        Args:
            operation: Plugin operation name for error messages.
            call: The pending plugin coroutine.

        Returns:
            The successful AdapterResult.

        Raises:
            AdapterError: If the plugin raised or reported failure.
        """
        try:
            result = await call
        except AdapterError:
            raise
        except Exception as e:
            raise AdapterError(operation, str(e)) from e

        if not result.success:
            raise AdapterError(
                operation,
                result.error or "plugin reported failure",
                logs=result.logs,
            )
        self._logger.debug(
            "adapter_call_succeeded", operation=operation, log_lines=len(result.logs)
        )
        return result

    def succeeded(self, **details: Any) -> StageVerdict:
        """Build a SUCCEEDED verdict."""
        return StageVerdict(status=StageStatus.SUCCEEDED, details=details)

    def failed(self, error: Exception | str, **details: Any) -> StageVerdict:
        """Build a FAILED verdict from an error or message with credentials redacted."""
        if isinstance(error, Exception):
            return StageVerdict(
                status=StageStatus.FAILED,
                error=sanitize_error_message(str(error)),
                error_type=type(error).__name__,
                details=details,
            )
        return StageVerdict(
            status=StageStatus.FAILED, error=sanitize_error_message(error), details=details
        )


__all__ = ["StageContext", "StageExecutor"]
