"""Execution result schemas.

Key Components:
    StageStatus: Lifecycle state of a stage or a whole run
    AdapterResult: Outcome of one external plugin call
    VariantScale: Size of a STAGE/BASELINE rollout
    TrafficDistribution: Per-variant traffic percentages
    StageVerdict: What an executor decided
    StageResult: A verdict plus timing, as recorded by the runner
    PipelineRunResult: Outcome of one pipeline run

All models are frozen and serialize with ``model_dump(mode="json")``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

from canarypipe.schemas.options import StageName, Variant


class StageStatus(str, Enum):
    """Lifecycle state of a stage or a pipeline run.

    NOT_STARTED → RUNNING → {SUCCEEDED, FAILED, CANCELLED}; terminal states
    are never left.

    Examples:
        >>> StageStatus.CANCELLED.is_terminal
        True
    """

    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        """Whether this state ends the stage or run."""
        return self in (StageStatus.SUCCEEDED, StageStatus.FAILED, StageStatus.CANCELLED)


class AdapterResult(BaseModel):
    """Outcome of a call into an infrastructure plugin.

    Attributes:
        success: Whether the operation completed.
        logs: Log lines produced by the operation.
        error: Error message when ``success`` is False.

    Examples:
        >>> AdapterResult(success=True, logs=["deployment.apps/web-stage created"]).success
        True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool
    logs: list[str] = Field(default_factory=list)
    error: str | None = None


class VariantScale(BaseModel):
    """How large a STAGE or BASELINE rollout is.

    Attributes:
        unit: "pods" for an absolute replica count, "percent" for a share
            of PRIMARY replicas.
        value: Replica count or percentage.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit: Literal["pods", "percent"]
    value: int = Field(..., ge=1)

    @classmethod
    def from_weight(cls, weight: int) -> VariantScale:
        """Translate a stage ``weight`` option into a scale.

        Args:
            weight: Percentage of PRIMARY replicas; 0 means unset.

        Returns:
            One pod when weight is 0, otherwise the percentage.

        Examples:
            >>> VariantScale.from_weight(0)
            VariantScale(unit='pods', value=1)
            >>> VariantScale.from_weight(10)
            VariantScale(unit='percent', value=10)
        """
        if weight == 0:
            return cls(unit="pods", value=1)
        return cls(unit="percent", value=weight)


class TrafficDistribution(BaseModel):
    """Traffic percentage per variant. Always sums to 100."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    primary: int = Field(default=0, ge=0, le=100)
    stage: int = Field(default=0, ge=0, le=100)
    baseline: int = Field(default=0, ge=0, le=100)

    @model_validator(mode="after")
    def _sums_to_hundred(self) -> Self:
        """Validate that the percentages add up to exactly 100."""
        total = self.primary + self.stage + self.baseline
        if total != 100:
            raise ValueError(f"traffic percentages must sum to 100, got {total}")
        return self

    def weight_of(self, variant: Variant) -> int:
        """Percentage routed to a variant."""
        return int(getattr(self, variant.value))

    def as_dict(self) -> dict[Variant, int]:
        """Distribution keyed by variant."""
        return {variant: self.weight_of(variant) for variant in Variant}


class StageVerdict(BaseModel):
    """Decision an executor reached for one stage.

    Attributes:
        status: SUCCEEDED, FAILED or CANCELLED.
        error: Diagnostic message for FAILED/CANCELLED.
        error_type: Exception class behind the error, e.g. "AdapterError".
        details: Stage-specific context (counts, logs, approver).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: StageStatus
    error: str | None = None
    error_type: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _terminal_only(self) -> Self:
        """Validate that a verdict is a terminal state."""
        if not self.status.is_terminal:
            raise ValueError(f"verdict status must be terminal, got {self.status.value}")
        return self


class StageResult(BaseModel):
    """A stage verdict as recorded by the runner.

    Attributes:
        index: Position of the stage in the pipeline.
        name: Stage kind.
        desc: Stage description.
        status: Terminal status of the stage.
        error: Diagnostic message for FAILED/CANCELLED.
        error_type: Exception class behind the error.
        details: Stage-specific context.
        started_at: When the executor started.
        finished_at: When the stage reached its terminal state.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    index: int = Field(..., ge=0)
    name: StageName
    desc: str = ""
    status: StageStatus
    error: str | None = None
    error_type: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime
    finished_at: datetime

    @property
    def duration_ms(self) -> int:
        """Wall-clock duration of the stage in milliseconds."""
        return int((self.finished_at - self.started_at).total_seconds() * 1000)


class PipelineRunResult(BaseModel):
    """Outcome of one pipeline run.

    Attributes:
        status: Terminal status of the run.
        stages: Results of every stage that ran, in execution order.
        error: Error of the stage that stopped the run, if any.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: StageStatus
    stages: list[StageResult] = Field(default_factory=list)
    error: str | None = None

    @property
    def failed_stage(self) -> StageResult | None:
        """The stage that ended the run unsuccessfully, if any."""
        for result in self.stages:
            if result.status is not StageStatus.SUCCEEDED:
                return result
        return None


__all__ = [
    "AdapterResult",
    "PipelineRunResult",
    "StageResult",
    "StageStatus",
    "StageVerdict",
    "TrafficDistribution",
    "VariantScale",
]
