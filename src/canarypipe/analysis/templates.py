"""Analysis template resolution.

A check that sets ``useTemplate`` inherits every field of the named
template; fields the check sets explicitly override the template's.

Example:
    >>> templates = AnalysisTemplateSpec.model_validate(
    ...     {"metrics": {"error-rate": {"query": "errors", "expected": "< 0.01"}}}
    ... )
    >>> options = AnalysisStageOptions.model_validate(
    ...     {"metrics": [{"useTemplate": "error-rate", "interval": "30s"}]}
    ... )
    >>> resolved = resolve_templates(options, templates)
    >>> resolved.metrics[0].query, resolved.metrics[0].interval.seconds
    ('errors', 30)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TypeVar

from canarypipe.errors import ConfigurationError
from canarypipe.schemas.options import (
    AnalysisHTTP,
    AnalysisLog,
    AnalysisMetrics,
    AnalysisStageOptions,
    AnalysisTemplateSpec,
)

CheckT = TypeVar("CheckT", AnalysisMetrics, AnalysisLog, AnalysisHTTP)


def _overlay(check: CheckT, templates: Mapping[str, CheckT], kind: str) -> CheckT:
    if not check.use_template:
        return check
    template = templates.get(check.use_template)
    if template is None:
        raise ConfigurationError(f"unknown {kind} analysis template: {check.use_template}")
    overrides = {
        field: getattr(check, field)
        for field in check.model_fields_set
        if field != "use_template"
    }
    overrides["use_template"] = check.use_template
    return template.model_copy(update=overrides)


def resolve_templates(
    options: AnalysisStageOptions,
    templates: AnalysisTemplateSpec | None,
) -> AnalysisStageOptions:
    """Expand ``useTemplate`` references in an analysis stage's checks.

    Args:
        options: Analysis options as configured on the stage.
        templates: Available templates; None means no templates are defined.

    Returns:
        Options whose checks carry the template values merged in.

    Raises:
        ConfigurationError: If a check names a template that does not exist.
    """
    templates = templates or AnalysisTemplateSpec()
    return options.model_copy(
        update={
            "metrics": [_overlay(m, templates.metrics, "metrics") for m in options.metrics],
            "logs": [_overlay(log, templates.logs, "log") for log in options.logs],
            "https": [_overlay(h, templates.https, "http") for h in options.https],
        }
    )


__all__ = ["resolve_templates"]
