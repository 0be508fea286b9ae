"""Pipeline definition schemas.

This module defines the decoded, immutable form of a deployment pipeline:
the tagged-variant PipelineStage, the track descriptors that tell canary
and baseline stages where to act, and the application specs that carry a
pipeline together with their deployment input.

Key Components:
    PipelineStage: One stage; ``name`` selects the legal ``options`` type
    K8sDeployTarget, K8sService: Deployment target and network service
    StageTrackOptions, BaselineTrackOptions: Where STAGE/BASELINE variants live
    AppPipeline: Ordered stages plus track descriptors
    KubernetesAppSpec, TerraformAppSpec: Application configuration

Example:
    >>> stage = PipelineStage.model_validate(
    ...     {"name": "WAIT", "timeout": "5m", "with": {"duration": "30s"}}
    ... )
    >>> type(stage.options).__name__
    'WaitStageOptions'
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

from canarypipe.registry import get_stage_definition
from canarypipe.schemas.duration import Duration
from canarypipe.schemas.options import StageName, StageOptions

_SCHEMA_CONFIG = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


def _coerce_stage_name(value: Any) -> StageName:
    """Resolve a raw stage name, rejecting anything outside the closed set."""
    if isinstance(value, StageName):
        return value
    try:
        return StageName(value)
    except ValueError:
        raise ValueError(f"unsupported stage name: {value}") from None


class PipelineStage(BaseModel):
    """A single stage of a pipeline.

    The stage ``name`` is the discriminant: it determines which option
    model ``options`` must hold. Exactly one option payload exists per
    stage, and its type always matches the name.

    Attributes:
        name: Stage kind.
        desc: Human-readable description.
        timeout: Hard deadline for the stage (0 = no deadline).
        options: Option payload for this kind (wire key ``with``).

    Examples:
        >>> stage = PipelineStage.model_validate({"name": "K8S_STAGE_IN"})
        >>> stage.options
        K8sStageInStageOptions()
    """

    model_config = _SCHEMA_CONFIG

    name: StageName
    desc: str = ""
    timeout: Duration = timedelta(0)
    options: StageOptions = Field(alias="with")

    @model_validator(mode="before")
    @classmethod
    def _decode_options(cls, data: Any) -> Any:
        """Parse the raw ``with`` payload into the option model for ``name``."""
        if not isinstance(data, Mapping):
            return data

        values = dict(data)
        stage_name = _coerce_stage_name(values.get("name"))
        values["name"] = stage_name

        payload = values.pop("with", None)
        if "options" in values:
            payload = values.pop("options")

        if isinstance(payload, BaseModel):
            values["options"] = payload
        else:
            options_model = get_stage_definition(stage_name).options_model
            values["options"] = options_model.model_validate(payload or {})
        return values

    @model_validator(mode="after")
    def _check_options_match_name(self) -> Self:
        """Reject an option payload whose type belongs to another stage kind."""
        expected = get_stage_definition(self.name).options_model
        if type(self.options) is not expected:
            raise ValueError(
                f"stage {self.name.value} requires {expected.__name__}, "
                f"got {type(self.options).__name__}"
            )
        return self


class K8sDeployTarget(BaseModel):
    """A Kubernetes workload that a track deploys to.

    Attributes:
        kind: Workload kind (e.g. "Deployment").
        name: Workload name.
    """

    model_config = _SCHEMA_CONFIG

    kind: str
    name: str


class K8sService(BaseModel):
    """A Kubernetes Service associated with a track."""

    model_config = _SCHEMA_CONFIG

    name: str


class StageTrackOptions(BaseModel):
    """Where K8S_STAGE_OUT/K8S_STAGE_IN act."""

    model_config = _SCHEMA_CONFIG

    target: K8sDeployTarget | None = None
    service: K8sService | None = None


class BaselineTrackOptions(BaseModel):
    """Where K8S_BASELINE_OUT/K8S_BASELINE_IN act."""

    model_config = _SCHEMA_CONFIG

    target: K8sDeployTarget | None = None
    service: K8sService | None = None


class AppPipeline(BaseModel):
    """The ordered stages used to deploy an application.

    Stage order is execution order.

    Attributes:
        stages: Stages to run, in order.
        stage_track: Deployment target of the STAGE variant.
        baseline_track: Deployment target of the BASELINE variant.
    """

    model_config = _SCHEMA_CONFIG

    stages: list[PipelineStage] = Field(default_factory=list)
    stage_track: StageTrackOptions | None = Field(default=None, alias="stageTrack")
    baseline_track: BaselineTrackOptions | None = Field(default=None, alias="baselineTrack")


# =============================================================================
# Application specs
# =============================================================================


class KubernetesAppInput(BaseModel):
    """Deployment input of a Kubernetes application."""

    model_config = _SCHEMA_CONFIG

    manifests: list[str] = Field(default_factory=list)
    kubectl_version: str = Field(default="", alias="kubectlVersion")
    helm_chart: str = Field(default="", alias="helmChart")
    helm_value_files: list[str] = Field(default_factory=list, alias="helmValueFiles")
    helm_version: str = Field(default="", alias="helmVersion")
    namespace: str = ""
    dependencies: list[str] = Field(default_factory=list)


class TerraformAppInput(BaseModel):
    """Deployment input of a Terraform application."""

    model_config = _SCHEMA_CONFIG

    workspace: str = ""
    terraform_version: str = Field(default="", alias="terraformVersion")
    dependencies: list[str] = Field(default_factory=list)


class KubernetesAppSpec(BaseModel):
    """Configuration for a Kubernetes application.

    Attributes:
        selector: Labels used to query all resources of the application.
        input: Manifests and tool versions.
        pipeline: Deployment pipeline (None = quick sync).
        destination: Name of the deployment destination.
    """

    model_config = _SCHEMA_CONFIG

    selector: dict[str, str] = Field(default_factory=dict)
    input: KubernetesAppInput = Field(default_factory=KubernetesAppInput)
    pipeline: AppPipeline | None = None
    destination: str = ""


class TerraformAppSpec(BaseModel):
    """Configuration for a Terraform application.

    ``destination`` is required.
    """

    model_config = _SCHEMA_CONFIG

    input: TerraformAppInput = Field(default_factory=TerraformAppInput)
    pipeline: AppPipeline | None = None
    destination: str = ""

    @model_validator(mode="after")
    def _require_destination(self) -> Self:
        """Validate that a destination is configured."""
        if not self.destination:
            raise ValueError("spec.destination for terraform application is required")
        return self


__all__ = [
    "AppPipeline",
    "BaselineTrackOptions",
    "K8sDeployTarget",
    "K8sService",
    "KubernetesAppInput",
    "KubernetesAppSpec",
    "PipelineStage",
    "StageTrackOptions",
    "TerraformAppInput",
    "TerraformAppSpec",
]
