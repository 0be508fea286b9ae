"""Exception hierarchy for canarypipe.

All exceptions inherit from DeliveryError, the base exception class.

Exception Hierarchy:
    DeliveryError (base)
    ├── ConfigurationError      # Bad stage name, malformed payload, invariant violation
    ├── StageTimeoutError       # A stage exceeded its deadline
    ├── AdapterError            # An external plugin call failed
    ├── ThresholdExceededError  # Analysis counters surpassed configured limits
    └── CancellationError       # Pipeline-level cancellation

Exit Codes:
    0 - Success
    1 - General error (DeliveryError)
    2 - Configuration error (ConfigurationError)
    3 - Stage timed out (StageTimeoutError)
    4 - Adapter failure (AdapterError)
    5 - Analysis threshold exceeded (ThresholdExceededError)
    6 - Pipeline cancelled (CancellationError)

ConfigurationError is only ever raised at decode/validate time. The other
errors are captured as the terminal state of a stage and reported through
StageResult rather than escaping the runner.

Example:
    >>> from canarypipe.errors import ConfigurationError
    >>> raise ConfigurationError("unsupported stage name: DEPLOY")
    Traceback (most recent call last):
        ...
    ConfigurationError: unsupported stage name: DEPLOY
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from canarypipe.validation import ValidationIssue


class DeliveryError(Exception):
    """Base exception for all canarypipe errors.

    Attributes:
        exit_code: CLI exit code for this error type (default: 1).
    """

    exit_code: int = 1


class ConfigurationError(DeliveryError):
    """Raised when pipeline configuration cannot be decoded or is invalid.

    Covers unknown stage names, payloads that do not match the stage's
    option schema, and invariant violations reported by the validator.

    Attributes:
        issues: Validation issues that caused the error (may be empty).
        exit_code: CLI exit code (2).

    Example:
        >>> raise ConfigurationError(
        ...     "pipeline is invalid",
        ...     issues=[ValidationIssue(stage_index=0, stage_name="WAIT", message="...")],
        ... )
    """

    exit_code: int = 2

    def __init__(
        self,
        message: str,
        issues: Sequence[ValidationIssue] | None = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Summary of the configuration problem.
            issues: Optional validation issues behind the error.
        """
        self.issues = list(issues or [])
        if self.issues:
            details = "; ".join(str(issue) for issue in self.issues)
            message = f"{message}: {details}"
        super().__init__(message)


class StageTimeoutError(DeliveryError, TimeoutError):
    """Raised when a stage does not reach a terminal state before its deadline.

    Attributes:
        stage_name: Name of the stage that timed out.
        timeout_seconds: The configured stage timeout.
        exit_code: CLI exit code (3).
    """

    exit_code: int = 3

    def __init__(self, stage_name: str, timeout_seconds: float) -> None:
        """Initialize StageTimeoutError.

        Args:
            stage_name: Name of the stage that timed out.
            timeout_seconds: The configured stage timeout.
        """
        self.stage_name = stage_name
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Stage {stage_name} timed out after {timeout_seconds:g}s")


class AdapterError(DeliveryError):
    """Raised when an external infrastructure or provider call fails.

    For rollout, traffic and Terraform stages this is directly a FAILED
    verdict. For analysis queries it only increments the failure counter.

    Attributes:
        adapter: Name of the adapter operation (e.g. "apply_manifests").
        reason: Description of the failure.
        logs: Log lines returned by the adapter, if any.
        exit_code: CLI exit code (4).
    """

    exit_code: int = 4

    def __init__(
        self,
        adapter: str,
        reason: str,
        logs: Sequence[str] | None = None,
    ) -> None:
        """Initialize AdapterError.

        Args:
            adapter: Name of the adapter operation that failed.
            reason: Description of the failure.
            logs: Optional log lines returned by the adapter.
        """
        self.adapter = adapter
        self.reason = reason
        self.logs = list(logs or [])
        super().__init__(f"{adapter} failed: {reason}")


class ThresholdExceededError(DeliveryError):
    """Raised when analysis counters exceed their configured limits.

    Attributes:
        failed_checks: Number of failed checks observed.
        threshold: Configured failed-check threshold.
        restarts: Number of container restarts observed.
        restart_threshold: Configured restart threshold.
        exit_code: CLI exit code (5).

    Example:
        >>> raise ThresholdExceededError(3, 2, 0, 0)
        Traceback (most recent call last):
            ...
        ThresholdExceededError: Analysis failed: 3 failed checks (threshold 2), ...
    """

    exit_code: int = 5

    def __init__(
        self,
        failed_checks: int,
        threshold: int,
        restarts: int,
        restart_threshold: int,
    ) -> None:
        """Initialize ThresholdExceededError.

        Args:
            failed_checks: Number of failed checks observed.
            threshold: Configured failed-check threshold.
            restarts: Number of container restarts observed.
            restart_threshold: Configured restart threshold.
        """
        self.failed_checks = failed_checks
        self.threshold = threshold
        self.restarts = restarts
        self.restart_threshold = restart_threshold
        super().__init__(
            f"Analysis failed: {failed_checks} failed checks (threshold {threshold}), "
            f"{restarts} restarts (threshold {restart_threshold})"
        )


class CancellationError(DeliveryError):
    """Raised when a pipeline run is cancelled.

    Cancellation is reported as CANCELLED, never FAILED, so it stays
    distinguishable from a genuine failure.

    Attributes:
        stage_name: Stage that was active when cancellation arrived, if any.
        exit_code: CLI exit code (6).
    """

    exit_code: int = 6

    def __init__(self, stage_name: str | None = None) -> None:
        """Initialize CancellationError.

        Args:
            stage_name: Stage that was active when cancellation arrived.
        """
        self.stage_name = stage_name
        msg = "Pipeline cancelled"
        if stage_name:
            msg += f" during stage {stage_name}"
        super().__init__(msg)


__all__ = [
    "AdapterError",
    "CancellationError",
    "ConfigurationError",
    "DeliveryError",
    "StageTimeoutError",
    "ThresholdExceededError",
]
