"""Stage registry: one lookup table from StageName to decoder and executor.

Decoding a stage (which option model is legal for a name) and executing
it (which executor runs it) both dispatch through STAGE_REGISTRY, so the
set of supported stages is defined in exactly one place.

Example:
    >>> from canarypipe.registry import get_stage_definition
    >>> from canarypipe.schemas.options import StageName
    >>> get_stage_definition(StageName.WAIT).options_model.__name__
    'WaitStageOptions'
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

from pydantic import BaseModel

from canarypipe.errors import ConfigurationError
from canarypipe.executors.analysis import AnalysisExecutor
from canarypipe.executors.approval import WaitApprovalExecutor
from canarypipe.executors.base import StageExecutor
from canarypipe.executors.k8s import (
    K8sBaselineInExecutor,
    K8sBaselineOutExecutor,
    K8sPrimaryOutExecutor,
    K8sStageInExecutor,
    K8sStageOutExecutor,
)
from canarypipe.executors.terraform import TerraformApplyExecutor, TerraformPlanExecutor
from canarypipe.executors.traffic import K8sTrafficRouteExecutor
from canarypipe.executors.wait import WaitExecutor
from canarypipe.schemas.options import (
    AnalysisStageOptions,
    K8sBaselineInStageOptions,
    K8sBaselineOutStageOptions,
    K8sPrimaryOutStageOptions,
    K8sStageInStageOptions,
    K8sStageOutStageOptions,
    K8sTrafficRouteStageOptions,
    StageName,
    TerraformApplyStageOptions,
    TerraformPlanStageOptions,
    WaitApprovalStageOptions,
    WaitStageOptions,
)


@dataclass(frozen=True)
class StageDefinition:
    """How one stage kind is decoded and executed.

    Attributes:
        name: The stage kind.
        options_model: Pydantic model the stage's ``with`` payload decodes into.
        executor_cls: Executor class instantiated fresh for every run.
        plugin: Plugin the executor needs from the PluginSet, if any.
    """

    name: StageName
    options_model: type[BaseModel]
    executor_cls: type[StageExecutor]
    plugin: Literal["k8s", "terraform"] | None = None


_DEFINITIONS = (
    StageDefinition(StageName.WAIT, WaitStageOptions, WaitExecutor),
    StageDefinition(StageName.WAIT_APPROVAL, WaitApprovalStageOptions, WaitApprovalExecutor),
    StageDefinition(StageName.ANALYSIS, AnalysisStageOptions, AnalysisExecutor),
    StageDefinition(
        StageName.K8S_PRIMARY_OUT, K8sPrimaryOutStageOptions, K8sPrimaryOutExecutor, "k8s"
    ),
    StageDefinition(StageName.K8S_STAGE_OUT, K8sStageOutStageOptions, K8sStageOutExecutor, "k8s"),
    StageDefinition(StageName.K8S_STAGE_IN, K8sStageInStageOptions, K8sStageInExecutor, "k8s"),
    StageDefinition(
        StageName.K8S_BASELINE_OUT, K8sBaselineOutStageOptions, K8sBaselineOutExecutor, "k8s"
    ),
    StageDefinition(
        StageName.K8S_BASELINE_IN, K8sBaselineInStageOptions, K8sBaselineInExecutor, "k8s"
    ),
    StageDefinition(
        StageName.K8S_TRAFFIC_ROUTE, K8sTrafficRouteStageOptions, K8sTrafficRouteExecutor, "k8s"
    ),
    StageDefinition(
        StageName.TERRAFORM_PLAN, TerraformPlanStageOptions, TerraformPlanExecutor, "terraform"
    ),
    StageDefinition(
        StageName.TERRAFORM_APPLY, TerraformApplyStageOptions, TerraformApplyExecutor, "terraform"
    ),
)

STAGE_REGISTRY: MappingProxyType[StageName, StageDefinition] = MappingProxyType(
    {definition.name: definition for definition in _DEFINITIONS}
)
"""Read-only mapping of every supported stage kind to its definition."""


def get_stage_definition(name: StageName | str) -> StageDefinition:
    """Look up the definition of a stage kind.

    Args:
        name: Stage kind, as enum or raw string.

    Returns:
        The registered StageDefinition.

    Raises:
        ConfigurationError: If the name is not a supported stage.
    """
    try:
        return STAGE_REGISTRY[StageName(name)]
    except (KeyError, ValueError):
        raise ConfigurationError(f"unsupported stage name: {name}") from None


__all__ = ["STAGE_REGISTRY", "StageDefinition", "get_stage_definition"]
