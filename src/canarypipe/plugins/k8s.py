"""K8sDeployPlugin ABC for Kubernetes rollout and traffic plugins.

Kubernetes deploy plugins are responsible for:
- Applying manifests for the PRIMARY, STAGE or BASELINE variant
- Removing STAGE/BASELINE workloads
- Applying traffic routing rules across variants

How manifests are rendered and how the cluster is reached is entirely up
to the implementation; the pipeline only sees AdapterResult values.

Example:
    >>> class KubectlPlugin(K8sDeployPlugin):
    ...     @property
    ...     def name(self) -> str:
    ...         return "kubectl"
    ...     # ... implement the abstract coroutines
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from canarypipe.schemas.options import Variant
    from canarypipe.schemas.pipeline import K8sDeployTarget, K8sService
    from canarypipe.schemas.results import AdapterResult, TrafficDistribution, VariantScale


class K8sDeployPlugin(ABC):
    """Abstract base class for Kubernetes deployment plugins.

    Concrete plugins must implement:
        - name property
        - apply_manifests() coroutine
        - cleanup_variant() coroutine
        - route_traffic() coroutine

    Implementations may raise instead of returning a failed AdapterResult;
    executors treat both the same way.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Plugin name used in logs and error messages."""
        ...

    @abstractmethod
    async def apply_manifests(
        self,
        variant: Variant,
        target: K8sDeployTarget | None,
        manifests: list[str],
        scale: VariantScale | None,
        suffix: str,
        with_service: bool,
    ) -> AdapterResult:
        """Apply manifests for one variant.

        Args:
            variant: Variant being rolled out.
            target: Track target for STAGE/BASELINE; None for PRIMARY or when
                the pipeline declares no track.
            manifests: Manifest paths (empty = the application's manifests).
            scale: Size of the rollout; None for PRIMARY.
            suffix: Suffix for generated resource names ("" for PRIMARY).
            with_service: Whether to create a Service for the variant.

        Returns:
            AdapterResult describing the apply.
        """
        ...

    @abstractmethod
    async def cleanup_variant(
        self,
        variant: Variant,
        target: K8sDeployTarget | None,
        suffix: str,
    ) -> AdapterResult:
        """Delete all resources of a STAGE or BASELINE variant.

        Args:
            variant: Variant being removed.
            target: Track target, if the pipeline declares one.
            suffix: Suffix the variant's resources were created with.

        Returns:
            AdapterResult describing the cleanup.
        """
        ...

    @abstractmethod
    async def route_traffic(
        self,
        distribution: TrafficDistribution,
        service: K8sService | None,
    ) -> AdapterResult:
        """Apply routing rules sending traffic to variants by percentage.

        Args:
            distribution: Percentage per variant, summing to 100.
            service: Service fronting the application, if known.

        Returns:
            AdapterResult describing whether the rules were applied.
        """
        ...

    async def container_restarts(self, variants: frozenset[Variant]) -> int:
        """Total container restarts observed in the given variants.

        Analysis polls this and compares the growth since the analysis began
        against ``restartThreshold``.

        Args:
            variants: Variants currently live.

        Returns:
            Cumulative restart count; plugins that cannot observe restarts
            return 0.
        """
        return 0


__all__ = ["K8sDeployPlugin"]
