"""Stage executors, one per stage kind.

The StageName → executor mapping lives in canarypipe.registry.
"""

from __future__ import annotations

from canarypipe.executors.analysis import AnalysisExecutor
from canarypipe.executors.approval import ApprovalBroker, ApprovalEvent, WaitApprovalExecutor
from canarypipe.executors.base import StageContext, StageExecutor
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

__all__ = [
    "AnalysisExecutor",
    "ApprovalBroker",
    "ApprovalEvent",
    "K8sBaselineInExecutor",
    "K8sBaselineOutExecutor",
    "K8sPrimaryOutExecutor",
    "K8sStageInExecutor",
    "K8sStageOutExecutor",
    "K8sTrafficRouteExecutor",
    "StageContext",
    "StageExecutor",
    "TerraformApplyExecutor",
    "TerraformPlanExecutor",
    "WaitApprovalExecutor",
    "WaitExecutor",
]
