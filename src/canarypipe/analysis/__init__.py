"""Analysis: periodic metrics/log/HTTP checks that gate a pipeline.

Key Components:
    AnalysisEvaluator: Runs the checks of one ANALYSIS stage to a verdict
    SamplerScheduler: One periodic sampler task per check
    resolve_templates: Expands ``useTemplate`` references
    parse_expectation, parse_status_expectation: Expectation predicates
    HTTPProbe: httpx-based provider for HTTP checks
"""

from __future__ import annotations

from canarypipe.analysis.evaluator import AnalysisEvaluator, AnalysisState, AnalysisVerdict
from canarypipe.analysis.expected import (
    Expectation,
    StatusExpectation,
    parse_expectation,
    parse_status_expectation,
)
from canarypipe.analysis.http import HTTPProbe
from canarypipe.analysis.scheduler import SamplerScheduler
from canarypipe.analysis.templates import resolve_templates

__all__ = [
    "AnalysisEvaluator",
    "AnalysisState",
    "AnalysisVerdict",
    "Expectation",
    "HTTPProbe",
    "SamplerScheduler",
    "StatusExpectation",
    "parse_expectation",
    "parse_status_expectation",
    "resolve_templates",
]
