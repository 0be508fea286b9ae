"""canarypipe: a progressive-delivery pipeline engine.

Decodes declarative deployment pipelines (wait, approval, analysis,
canary/baseline rollout, traffic shifting, Terraform plan/apply) and
drives an application through them, gating progress on time, human
approval and live metric/log/HTTP analysis.

Example:
    >>> from canarypipe import PipelineRunner, PluginSet, decode_pipeline
    >>> pipeline = decode_pipeline(record)
    >>> result = await PipelineRunner(pipeline, PluginSet(k8s=plugin)).run()
"""

from __future__ import annotations

__version__ = "0.1.0"

from canarypipe.decoder import decode_app_spec, decode_pipeline, decode_stage, encode_stage
from canarypipe.errors import (
    AdapterError,
    CancellationError,
    ConfigurationError,
    DeliveryError,
    StageTimeoutError,
    ThresholdExceededError,
)
from canarypipe.executors.approval import ApprovalBroker, ApprovalEvent
from canarypipe.plugins import PluginSet
from canarypipe.registry import STAGE_REGISTRY, get_stage_definition
from canarypipe.runner import PipelineRunner
from canarypipe.validation import ValidationIssue, ensure_valid, validate_pipeline

__all__ = [
    "AdapterError",
    "ApprovalBroker",
    "ApprovalEvent",
    "CancellationError",
    "ConfigurationError",
    "DeliveryError",
    "PipelineRunner",
    "PluginSet",
    "STAGE_REGISTRY",
    "StageTimeoutError",
    "ThresholdExceededError",
    "ValidationIssue",
    "__version__",
    "decode_app_spec",
    "decode_pipeline",
    "decode_stage",
    "encode_stage",
    "ensure_valid",
    "get_stage_definition",
    "validate_pipeline",
]
