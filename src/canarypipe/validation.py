"""Pipeline validation.

Decoding guarantees each stage's options have the right shape;
validation checks the cross-field rules a shape cannot express:

- stage timeouts and WAIT durations are not negative
- K8S_TRAFFIC_ROUTE percentages are each within 0..100 and, unless a
  ``target`` is set, sum to exactly 100
- ANALYSIS runs for longer than zero, thresholds are not negative, at
  least one check is configured, every ``expected`` and
  ``expectedStatus`` parses and every ``useTemplate`` names a supplied
  template
- WAIT_APPROVAL has at least one approver
- K8S_STAGE_OUT / K8S_BASELINE_OUT weights are within 0..100

All issues are collected rather than stopping at the first.

Example:
    >>> issues = validate_pipeline(pipeline)
    >>> for issue in issues:
    ...     print(issue)
    stages[2] K8S_TRAFFIC_ROUTE: traffic percentages must sum to 100, got 120
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import timedelta
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

from canarypipe.analysis.expected import parse_expectation, parse_status_expectation
from canarypipe.errors import ConfigurationError
from canarypipe.schemas.options import (
    AnalysisStageOptions,
    AnalysisTemplateSpec,
    K8sBaselineOutStageOptions,
    K8sStageOutStageOptions,
    K8sTrafficRouteStageOptions,
    StageName,
    WaitApprovalStageOptions,
    WaitStageOptions,
)
from canarypipe.schemas.pipeline import AppPipeline

logger = structlog.get_logger(__name__)


class ValidationIssue(BaseModel):
    """A single rule violation in a pipeline.

    Attributes:
        stage_index: Position of the offending stage.
        stage_name: Kind of the offending stage.
        field: Option field at fault, if the rule is about one field.
        message: What is wrong.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    stage_index: int
    stage_name: str
    field: str | None = None
    message: str

    def __str__(self) -> str:
        location = f"stages[{self.stage_index}] {self.stage_name}"
        if self.field:
            location += f".{self.field}"
        return f"{location}: {self.message}"


_Finding = tuple[str | None, str]
"""(field, message) pairs produced by the per-kind rules."""


def _check_percentage(field: str, value: int) -> Iterator[_Finding]:
    if not 0 <= value <= 100:
        yield field, f"must be within 0..100, got {value}"


def _wait_rules(
    options: WaitStageOptions, templates: AnalysisTemplateSpec | None
) -> Iterator[_Finding]:
    if options.duration < timedelta(0):
        yield "duration", "must not be negative"


def _approval_rules(
    options: WaitApprovalStageOptions, templates: AnalysisTemplateSpec | None
) -> Iterator[_Finding]:
    if not options.approvers:
        yield "approvers", "at least one approver is required"


def _traffic_rules(
    options: K8sTrafficRouteStageOptions, templates: AnalysisTemplateSpec | None
) -> Iterator[_Finding]:
    yield from _check_percentage("primary", options.primary)
    yield from _check_percentage("stage", options.stage)
    yield from _check_percentage("baseline", options.baseline)
    if options.target is None:
        total = options.primary + options.stage + options.baseline
        if total != 100:
            yield None, f"traffic percentages must sum to 100, got {total}"


def _rollout_rules(
    options: K8sStageOutStageOptions | K8sBaselineOutStageOptions,
    templates: AnalysisTemplateSpec | None,
) -> Iterator[_Finding]:
    yield from _check_percentage("weight", options.weight)


def _analysis_rules(
    options: AnalysisStageOptions, templates: AnalysisTemplateSpec | None
) -> Iterator[_Finding]:
    if options.duration <= timedelta(0):
        yield "duration", "an analysis window longer than zero is required"
    if options.threshold < 0:
        yield "threshold", f"must not be negative, got {options.threshold}"
    if options.restart_threshold < 0:
        yield "restartThreshold", f"must not be negative, got {options.restart_threshold}"
    if not options.checks:
        yield None, "at least one of metrics, logs or https must be configured"

    known = templates or AnalysisTemplateSpec()
    for kind, checks, named in (
        ("metrics", options.metrics, known.metrics),
        ("logs", options.logs, known.logs),
    ):
        for i, check in enumerate(checks):
            template = named.get(check.use_template) if check.use_template else None
            if check.use_template and template is None:
                yield f"{kind}[{i}].useTemplate", f"unknown template {check.use_template!r}"
            expected = check.expected or (template.expected if template else "")
            if expected:
                try:
                    parse_expectation(expected)
                except ValueError as e:
                    yield f"{kind}[{i}].expected", str(e)
            elif not check.use_template:
                yield f"{kind}[{i}].expected", "an expectation is required"

    for i, http in enumerate(options.https):
        if http.use_template and http.use_template not in known.https:
            yield f"https[{i}].useTemplate", f"unknown template {http.use_template!r}"
        try:
            parse_status_expectation(http.expected_status)
        except ValueError as e:
            yield f"https[{i}].expectedStatus", str(e)
        if not http.url and not http.use_template:
            yield f"https[{i}].url", "a URL is required"


_Rule = Callable[[Any, AnalysisTemplateSpec | None], Iterator[_Finding]]

_STAGE_RULES: dict[StageName, _Rule] = {
    StageName.WAIT: _wait_rules,
    StageName.WAIT_APPROVAL: _approval_rules,
    StageName.ANALYSIS: _analysis_rules,
    StageName.K8S_STAGE_OUT: _rollout_rules,
    StageName.K8S_BASELINE_OUT: _rollout_rules,
    StageName.K8S_TRAFFIC_ROUTE: _traffic_rules,
}


def validate_pipeline(
    pipeline: AppPipeline,
    *,
    templates: AnalysisTemplateSpec | None = None,
) -> list[ValidationIssue]:
    """Check a decoded pipeline against the cross-field rules.

    Args:
        pipeline: The pipeline to check.
        templates: Analysis templates. When None, every ``useTemplate``
            reference is unknown.

    Returns:
        All issues found, in stage order (empty if valid).
    """
    issues: list[ValidationIssue] = []
    for index, stage in enumerate(pipeline.stages):
        findings: list[_Finding] = []
        if stage.timeout < timedelta(0):
            findings.append(("timeout", "must not be negative"))
        rule = _STAGE_RULES.get(stage.name)
        if rule is not None:
            findings.extend(rule(stage.options, templates))
        issues.extend(
            ValidationIssue(
                stage_index=index,
                stage_name=stage.name.value,
                field=field,
                message=message,
            )
            for field, message in findings
        )
    return issues


def ensure_valid(
    pipeline: AppPipeline,
    *,
    templates: AnalysisTemplateSpec | None = None,
) -> None:
    """Raise if a pipeline has any validation issue.

    Args:
        pipeline: The pipeline to check.
        templates: Analysis templates for ``useTemplate`` checks.

    Raises:
        ConfigurationError: Carrying every issue found.
    """
    issues = validate_pipeline(pipeline, templates=templates)
    if issues:
        logger.warning("pipeline_invalid", issues=len(issues))
        raise ConfigurationError("pipeline is invalid", issues=issues)


__all__ = ["ValidationIssue", "ensure_valid", "validate_pipeline"]
