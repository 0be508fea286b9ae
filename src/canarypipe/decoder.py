"""Decoding of generic configuration records into typed pipeline models.

A stage record is a plain mapping::

    {"name": "ANALYSIS", "desc": "...", "timeout": "10m", "with": {...}}

The decoder reads ``name`` first, looks up the option model registered for
it and parses ``with`` into that model; a missing or empty ``with`` yields
the model's defaults. Every failure surfaces as ConfigurationError, so
callers never see a pydantic ValidationError.

Example:
    >>> stage = decode_stage({"name": "WAIT", "with": {"duration": "1m"}})
    >>> encode_stage(stage)
    {'name': 'WAIT', 'desc': '', 'timeout': '0', 'with': {'duration': '1m'}}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ValidationError

from canarypipe.errors import ConfigurationError
from canarypipe.registry import get_stage_definition
from canarypipe.schemas.options import StageName
from canarypipe.schemas.pipeline import (
    AppPipeline,
    KubernetesAppSpec,
    PipelineStage,
    TerraformAppSpec,
)

logger = structlog.get_logger(__name__)

ApplicationKind = Literal["KUBERNETES", "TERRAFORM"]

_APP_SPEC_MODELS: dict[str, type[KubernetesAppSpec] | type[TerraformAppSpec]] = {
    "KUBERNETES": KubernetesAppSpec,
    "TERRAFORM": TerraformAppSpec,
}


def _format_errors(error: ValidationError) -> list[str]:
    """Render pydantic errors as "loc: message" strings."""
    messages = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"])
        msg = err["msg"]
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]
        messages.append(f"{loc}: {msg}" if loc else msg)
    return messages


def _config_error(summary: str, error: ValidationError) -> ConfigurationError:
    details = "; ".join(_format_errors(error))
    return ConfigurationError(f"{summary}: {details}")


def decode_stage(record: Mapping[str, Any]) -> PipelineStage:
    """Decode one stage record.

    Args:
        record: Mapping with ``name`` and optional ``desc``, ``timeout``, ``with``.

    Returns:
        The typed stage; its options are an instance of the model
        registered for its name.

    Raises:
        ConfigurationError: If the name is unsupported or the payload does
            not match the stage's option schema.
    """
    if not isinstance(record, Mapping):
        raise ConfigurationError(f"stage record must be a mapping, got {type(record).__name__}")

    name = record.get("name")
    # Unknown names are reported before any payload parsing.
    definition = get_stage_definition(name if isinstance(name, (str, StageName)) else str(name))

    payload = record.get("with")
    try:
        options = (
            payload
            if isinstance(payload, BaseModel)
            else definition.options_model.model_validate(payload or {})
        )
    except ValidationError as e:
        raise _config_error(f"invalid {definition.name.value} stage options", e) from None

    try:
        return PipelineStage.model_validate({**record, "with": options})
    except ValidationError as e:
        raise _config_error(f"invalid {definition.name.value} stage", e) from None


def encode_stage(stage: PipelineStage) -> dict[str, Any]:
    """Encode a stage back into its generic record.

    Durations are written as canonical duration strings and field names
    use their wire aliases, so ``decode_stage(encode_stage(s)) == s``.

    Args:
        stage: The stage to encode.

    Returns:
        Record with ``name``, ``desc``, ``timeout`` and ``with``.
    """
    return stage.model_dump(mode="json", by_alias=True)


def decode_pipeline(record: Mapping[str, Any]) -> AppPipeline:
    """Decode a pipeline record (``stages`` plus optional tracks).

    Args:
        record: Mapping shaped like AppPipeline.

    Returns:
        The typed pipeline.

    Raises:
        ConfigurationError: If any stage or track is invalid.
    """
    if not isinstance(record, Mapping):
        raise ConfigurationError(f"pipeline record must be a mapping, got {type(record).__name__}")

    stages = record.get("stages") or []
    if not isinstance(stages, list):
        raise ConfigurationError("pipeline stages must be a list")
    for index, stage in enumerate(stages):
        if isinstance(stage, Mapping):
            try:
                get_stage_definition(str(stage.get("name")))
            except ConfigurationError as e:
                raise ConfigurationError(f"stages.{index}: {e}") from None

    try:
        pipeline = AppPipeline.model_validate(record)
    except ValidationError as e:
        raise _config_error("invalid pipeline", e) from None

    logger.debug("pipeline_decoded", stages=len(pipeline.stages))
    return pipeline


def decode_app_spec(
    kind: ApplicationKind | str,
    record: Mapping[str, Any],
) -> KubernetesAppSpec | TerraformAppSpec:
    """Decode an application spec of the given kind.

    Args:
        kind: "KUBERNETES" or "TERRAFORM" (case-insensitive).
        record: Mapping shaped like the spec model.

    Returns:
        KubernetesAppSpec or TerraformAppSpec.

    Raises:
        ConfigurationError: If the kind is unknown or the spec is invalid.
    """
    model = _APP_SPEC_MODELS.get(str(kind).upper())
    if model is None:
        raise ConfigurationError(f"unsupported application kind: {kind}")
    try:
        return model.model_validate(record)
    except ValidationError as e:
        raise _config_error(f"invalid {str(kind).lower()} application spec", e) from None


__all__ = [
    "ApplicationKind",
    "decode_app_spec",
    "decode_pipeline",
    "decode_stage",
    "encode_stage",
]
