"""K8S_TRAFFIC_ROUTE stage executor."""

from __future__ import annotations

from canarypipe.executors.base import StageExecutor
from canarypipe.routing import TrafficRouter
from canarypipe.schemas.results import StageVerdict


class K8sTrafficRouteExecutor(StageExecutor):
    """Splits traffic across variants, succeeding when the plugin applies it."""

    async def execute(self) -> StageVerdict:
        stage_track = self.ctx.pipeline.stage_track
        service = stage_track.service if stage_track else None
        router = TrafficRouter(self.k8s, self.ctx.live_variants)
        distribution = await router.route(self.options, service)
        return self.succeeded(**distribution.model_dump())


__all__ = ["K8sTrafficRouteExecutor"]
