"""Pydantic schemas for pipeline configuration and results.

Submodules:
    duration: Go-style Duration type
    options: StageName and per-stage option models
    pipeline: PipelineStage, AppPipeline and application specs
    results: Stage verdicts, results and traffic distributions

``pipeline`` depends on canarypipe.registry and is imported on its own
(``from canarypipe.schemas.pipeline import AppPipeline``).
"""

from __future__ import annotations

from canarypipe.schemas.duration import Duration, format_duration, parse_duration
from canarypipe.schemas.options import (
    AnalysisHTTP,
    AnalysisLog,
    AnalysisMetrics,
    AnalysisStageOptions,
    AnalysisTemplateSpec,
    StageName,
    StageOptions,
    Variant,
)
from canarypipe.schemas.results import (
    AdapterResult,
    PipelineRunResult,
    StageResult,
    StageStatus,
    StageVerdict,
    TrafficDistribution,
    VariantScale,
)

__all__ = [
    "AdapterResult",
    "AnalysisHTTP",
    "AnalysisLog",
    "AnalysisMetrics",
    "AnalysisStageOptions",
    "AnalysisTemplateSpec",
    "Duration",
    "PipelineRunResult",
    "StageName",
    "StageOptions",
    "StageResult",
    "StageStatus",
    "StageVerdict",
    "TrafficDistribution",
    "Variant",
    "VariantScale",
    "format_duration",
    "parse_duration",
]
