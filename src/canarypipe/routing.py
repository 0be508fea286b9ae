"""Traffic routing across PRIMARY, STAGE and BASELINE variants.

A K8S_TRAFFIC_ROUTE stage either sends all traffic to one ``target``
variant or splits it by the configured percentages, which the validator
has already checked sum to 100. Routing is a single plugin call; there
is no polling for convergence.

Example:
    >>> options = K8sTrafficRouteStageOptions(primary=80, stage=20)
    >>> compute_distribution(options)
    TrafficDistribution(primary=80, stage=20, baseline=0)
"""

from __future__ import annotations

from collections.abc import Set
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from canarypipe.errors import AdapterError, ConfigurationError
from canarypipe.plugins.k8s import K8sDeployPlugin
from canarypipe.schemas.options import K8sTrafficRouteStageOptions, Variant
from canarypipe.schemas.results import AdapterResult, TrafficDistribution

if TYPE_CHECKING:
    from canarypipe.schemas.pipeline import K8sService

logger = structlog.get_logger(__name__)


def compute_distribution(options: K8sTrafficRouteStageOptions) -> TrafficDistribution:
    """Translate traffic route options into per-variant percentages.

    Args:
        options: The stage's routing options.

    Returns:
        100% to ``target`` when set, otherwise the configured split.

    Raises:
        ConfigurationError: If no target is set and the percentages are
            out of range or do not sum to 100.

    Examples:
        >>> compute_distribution(K8sTrafficRouteStageOptions(target="stage", primary=10))
        TrafficDistribution(primary=0, stage=100, baseline=0)
    """
    if options.target is not None:
        return TrafficDistribution(**{options.target.value: 100})
    try:
        return TrafficDistribution(
            primary=options.primary,
            stage=options.stage,
            baseline=options.baseline,
        )
    except ValidationError as e:
        issues = "; ".join(err["msg"] for err in e.errors())
        raise ConfigurationError(f"invalid traffic split: {issues}") from None


class TrafficRouter:
    """Applies a traffic distribution through the Kubernetes plugin.

    Args:
        plugin: Kubernetes deploy plugin.
        live_variants: Variants currently deployed.
    """

    def __init__(self, plugin: K8sDeployPlugin, live_variants: Set[Variant]) -> None:
        self._plugin = plugin
        self._live_variants = live_variants

    async def route(
        self,
        options: K8sTrafficRouteStageOptions,
        service: K8sService | None = None,
    ) -> TrafficDistribution:
        """Route traffic as the options describe.

        Args:
            options: The stage's routing options.
            service: Service fronting the application, if known.

        Returns:
            The distribution that was applied.

        Raises:
            ConfigurationError: If the percentages are invalid.
            AdapterError: If a variant receiving traffic is not deployed,
                or the plugin fails.
        """
        distribution = compute_distribution(options)
        for variant, weight in distribution.as_dict().items():
            if weight > 0 and variant not in self._live_variants:
                raise AdapterError(
                    "route_traffic",
                    f"cannot route {weight}% to {variant.value}: variant is not deployed",
                )

        logger.info(
            "traffic_routing",
            primary=distribution.primary,
            stage=distribution.stage,
            baseline=distribution.baseline,
            service=service.name if service else None,
        )
        try:
            result: AdapterResult = await self._plugin.route_traffic(distribution, service)
        except AdapterError:
            raise
        except Exception as e:
            raise AdapterError("route_traffic", str(e)) from e
        if not result.success:
            raise AdapterError(
                "route_traffic", result.error or "plugin reported failure", logs=result.logs
            )
        return distribution


__all__ = ["TrafficRouter", "compute_distribution"]
