"""Stage names and per-stage option schemas.

Every pipeline stage is identified by a StageName and configured by exactly
one option model. The mapping between the two lives in canarypipe.registry.

Key Components:
    StageName: Closed set of supported stage kinds
    Variant: Workload variants traffic can be routed to
    WaitStageOptions .. TerraformApplyStageOptions: Per-kind option payloads
    AnalysisMetrics, AnalysisLog, AnalysisHTTP: Analysis check descriptions
    AnalysisTemplateSpec: Named, reusable analysis check definitions

Wire names are camelCase (``restartThreshold``, ``withService``); Python
attribute names are snake_case. Both are accepted on input.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from canarypipe.schemas.duration import Duration

_OPTIONS_CONFIG = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class StageName(str, Enum):
    """Stage kinds an application passes through on its way to the desired state.

    Attributes:
        WAIT: Wait for a specified period of time.
        WAIT_APPROVAL: Wait until one of the approvers approves.
        ANALYSIS: Analyse application health from metrics, logs and HTTP checks.
        K8S_PRIMARY_OUT: PRIMARY updated to the new version/configuration.
        K8S_STAGE_OUT: STAGE workloads rolled out with the new version.
        K8S_STAGE_IN: STAGE workloads cleaned up.
        K8S_BASELINE_OUT: BASELINE workloads rolled out with the current version.
        K8S_BASELINE_IN: BASELINE workloads cleaned up.
        K8S_TRAFFIC_ROUTE: Traffic split across PRIMARY, STAGE and BASELINE.
        TERRAFORM_PLAN: Show the Terraform plan result.
        TERRAFORM_APPLY: Apply the new Terraform configuration.

    Examples:
        >>> StageName("K8S_STAGE_OUT")
        <StageName.K8S_STAGE_OUT: 'K8S_STAGE_OUT'>
    """

    WAIT = "WAIT"
    WAIT_APPROVAL = "WAIT_APPROVAL"
    ANALYSIS = "ANALYSIS"
    K8S_PRIMARY_OUT = "K8S_PRIMARY_OUT"
    K8S_STAGE_OUT = "K8S_STAGE_OUT"
    K8S_STAGE_IN = "K8S_STAGE_IN"
    K8S_BASELINE_OUT = "K8S_BASELINE_OUT"
    K8S_BASELINE_IN = "K8S_BASELINE_IN"
    K8S_TRAFFIC_ROUTE = "K8S_TRAFFIC_ROUTE"
    TERRAFORM_PLAN = "TERRAFORM_PLAN"
    TERRAFORM_APPLY = "TERRAFORM_APPLY"


class Variant(str, Enum):
    """Workload variants of a Kubernetes application."""

    PRIMARY = "primary"
    STAGE = "stage"
    BASELINE = "baseline"


# =============================================================================
# Simple stages
# =============================================================================


class WaitStageOptions(BaseModel):
    """Configurable values for a WAIT stage.

    Attributes:
        duration: How long to wait.
    """

    model_config = _OPTIONS_CONFIG

    duration: Duration = Field(default=timedelta(0), description="How long to wait")


class WaitApprovalStageOptions(BaseModel):
    """Configurable values for a WAIT_APPROVAL stage.

    Attributes:
        approvers: Identities allowed to approve. Order is irrelevant.
    """

    model_config = _OPTIONS_CONFIG

    approvers: list[str] = Field(
        default_factory=list,
        description="Identities whose approval lets the pipeline continue",
    )


# =============================================================================
# Kubernetes stages
# =============================================================================


class K8sPrimaryOutStageOptions(BaseModel):
    """Configurable values for a K8S_PRIMARY_OUT stage."""

    model_config = _OPTIONS_CONFIG

    manifests: list[str] = Field(
        default_factory=list,
        description="Manifest paths applied to PRIMARY (empty = application manifests)",
    )


class K8sStageOutStageOptions(BaseModel):
    """Configurable values for a K8S_STAGE_OUT stage.

    Attributes:
        weight: Size of the STAGE workloads as a percentage of PRIMARY replicas.
            Zero means a single pod.
        suffix: Suffix used when naming the STAGE resources.
        with_service: Whether a Service resource is created for STAGE.
    """

    model_config = _OPTIONS_CONFIG

    weight: int = Field(default=0, description="Percentage of PRIMARY replicas (0 = 1 pod)")
    suffix: str = Field(default="stage", description="Suffix for STAGE resource names")
    with_service: bool = Field(
        default=False,
        alias="withService",
        description="Create a Service resource for STAGE",
    )


class K8sStageInStageOptions(BaseModel):
    """Configurable values for a K8S_STAGE_IN stage (none)."""

    model_config = _OPTIONS_CONFIG


class K8sBaselineOutStageOptions(BaseModel):
    """Configurable values for a K8S_BASELINE_OUT stage.

    Attributes:
        weight: Size of the BASELINE workloads as a percentage of PRIMARY replicas.
            Zero means a single pod.
        suffix: Suffix used when naming the BASELINE resources.
        with_service: Whether a Service resource is created for BASELINE.
    """

    model_config = _OPTIONS_CONFIG

    weight: int = Field(default=0, description="Percentage of PRIMARY replicas (0 = 1 pod)")
    suffix: str = Field(default="baseline", description="Suffix for BASELINE resource names")
    with_service: bool = Field(
        default=False,
        alias="withService",
        description="Create a Service resource for BASELINE",
    )


class K8sBaselineInStageOptions(BaseModel):
    """Configurable values for a K8S_BASELINE_IN stage (none)."""

    model_config = _OPTIONS_CONFIG


class K8sTrafficRouteStageOptions(BaseModel):
    """Configurable values for a K8S_TRAFFIC_ROUTE stage.

    If ``target`` is set, all traffic goes to that variant and the
    percentages are ignored. Otherwise primary + stage + baseline must
    be exactly 100 (checked by the pipeline validator).

    Examples:
        >>> K8sTrafficRouteStageOptions(primary=50, stage=30, baseline=20).primary
        50
        >>> K8sTrafficRouteStageOptions(target="stage").target
        <Variant.STAGE: 'stage'>
    """

    model_config = _OPTIONS_CONFIG

    target: Variant | None = Field(
        default=None,
        description="Variant receiving all traffic (overrides percentages)",
    )
    primary: int = Field(default=0, description="Percentage of traffic to PRIMARY")
    stage: int = Field(default=0, description="Percentage of traffic to STAGE")
    baseline: int = Field(default=0, description="Percentage of traffic to BASELINE")


# =============================================================================
# Terraform stages
# =============================================================================


class TerraformPlanStageOptions(BaseModel):
    """Configurable values for a TERRAFORM_PLAN stage (none)."""

    model_config = _OPTIONS_CONFIG


class TerraformApplyStageOptions(BaseModel):
    """Configurable values for a TERRAFORM_APPLY stage (none)."""

    model_config = _OPTIONS_CONFIG


# =============================================================================
# Analysis
# =============================================================================


class AnalysisMetrics(BaseModel):
    """A metrics query evaluated periodically during analysis.

    Attributes:
        query: Provider-specific query string.
        expected: Predicate the query result must satisfy, e.g. "< 0.01".
        interval: Time between evaluations (0 = runner default).
        timeout: How long after which a single query times out (0 = runner default).
        provider: Name of the analysis provider that runs the query.
        use_template: Name of an analysis template to inherit from.
    """

    model_config = _OPTIONS_CONFIG

    query: str = ""
    expected: str = ""
    interval: Duration = timedelta(0)
    timeout: Duration = timedelta(0)
    provider: str = ""
    use_template: str = Field(default="", alias="useTemplate")


class AnalysisLog(BaseModel):
    """A log query comparing log entries of the new and old versions.

    Attributes:
        query: Provider-specific log query.
        expected: Predicate on the number of matching entries, e.g. "<= 5".
        threshold: Provider-side tolerance passed through with the query.
        interval: Time between evaluations (0 = runner default).
        timeout: Per-query timeout (0 = runner default).
        provider: Name of the analysis provider that runs the query.
        use_template: Name of an analysis template to inherit from.
    """

    model_config = _OPTIONS_CONFIG

    query: str = ""
    expected: str = ""
    threshold: int = 0
    interval: Duration = timedelta(0)
    timeout: Duration = timedelta(0)
    provider: str = ""
    use_template: str = Field(default="", alias="useTemplate")


class AnalysisHTTP(BaseModel):
    """An HTTP request whose response is checked during analysis.

    Attributes:
        url: Request URL.
        method: HTTP method.
        headers: Custom headers as "Name: value" strings. Repeats are allowed.
            Values written as "sealed:<base64>" are decrypted before sending.
        expected_status: Expected status code ("200") or class ("2xx").
        expected_response: Substring the response body must contain.
        interval: Time between requests (0 = runner default).
        timeout: Per-request timeout (0 = runner default).
        provider: Name of the analysis provider that sends the request.
        use_template: Name of an analysis template to inherit from.
    """

    model_config = _OPTIONS_CONFIG

    url: str = ""
    method: str = "GET"
    headers: list[str] = Field(default_factory=list)
    expected_status: str = Field(default="", alias="expectedStatus")
    expected_response: str = Field(default="", alias="expectedResponse")
    interval: Duration = timedelta(0)
    timeout: Duration = timedelta(0)
    provider: str = ""
    use_template: str = Field(default="", alias="useTemplate")


AnalysisCheck = Union[AnalysisMetrics, AnalysisLog, AnalysisHTTP]
"""Any single analysis check description."""


class AnalysisStageOptions(BaseModel):
    """Configurable values for an ANALYSIS stage.

    Attributes:
        duration: How long the analysis runs.
        threshold: Maximum number of failed checks, across all checks, before
            the stage is considered a failure.
        restart_threshold: Maximum number of container restarts before the
            stage is considered a failure.
        metrics: Metrics queries.
        logs: Log queries.
        https: HTTP checks.

    Examples:
        >>> opts = AnalysisStageOptions.model_validate(
        ...     {"duration": "10m", "threshold": 2, "restartThreshold": 0}
        ... )
        >>> opts.duration
        datetime.timedelta(seconds=600)
    """

    model_config = _OPTIONS_CONFIG

    duration: Duration = timedelta(0)
    threshold: int = 0
    restart_threshold: int = Field(default=0, alias="restartThreshold")
    metrics: list[AnalysisMetrics] = Field(default_factory=list)
    logs: list[AnalysisLog] = Field(default_factory=list)
    https: list[AnalysisHTTP] = Field(default_factory=list)

    @property
    def checks(self) -> list[AnalysisCheck]:
        """All configured checks in metrics, logs, https order."""
        return [*self.metrics, *self.logs, *self.https]


class AnalysisTemplateSpec(BaseModel):
    """Named analysis checks that stages reference through ``useTemplate``.

    Examples:
        >>> templates = AnalysisTemplateSpec.model_validate(
        ...     {"metrics": {"error-rate": {"query": "errors", "expected": "< 0.01"}}}
        ... )
        >>> templates.metrics["error-rate"].expected
        '< 0.01'
    """

    model_config = _OPTIONS_CONFIG

    metrics: dict[str, AnalysisMetrics] = Field(default_factory=dict)
    logs: dict[str, AnalysisLog] = Field(default_factory=dict)
    https: dict[str, AnalysisHTTP] = Field(default_factory=dict)


StageOptions = Union[
    WaitStageOptions,
    WaitApprovalStageOptions,
    AnalysisStageOptions,
    K8sPrimaryOutStageOptions,
    K8sStageOutStageOptions,
    K8sStageInStageOptions,
    K8sBaselineOutStageOptions,
    K8sBaselineInStageOptions,
    K8sTrafficRouteStageOptions,
    TerraformPlanStageOptions,
    TerraformApplyStageOptions,
]
"""Sum type over every per-kind option payload."""


__all__ = [
    "AnalysisCheck",
    "AnalysisHTTP",
    "AnalysisLog",
    "AnalysisMetrics",
    "AnalysisStageOptions",
    "AnalysisTemplateSpec",
    "K8sBaselineInStageOptions",
    "K8sBaselineOutStageOptions",
    "K8sPrimaryOutStageOptions",
    "K8sStageInStageOptions",
    "K8sStageOutStageOptions",
    "K8sTrafficRouteStageOptions",
    "StageName",
    "StageOptions",
    "TerraformApplyStageOptions",
    "TerraformPlanStageOptions",
    "Variant",
    "WaitApprovalStageOptions",
    "WaitStageOptions",
]
