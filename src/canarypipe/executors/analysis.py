"""ANALYSIS stage executor."""

from __future__ import annotations

from canarypipe.analysis.evaluator import AnalysisEvaluator, AnalysisState, RestartSource
from canarypipe.analysis.http import DEFAULT_PROVIDER_NAME, HTTPProbe
from canarypipe.analysis.templates import resolve_templates
from canarypipe.executors.base import StageExecutor
from canarypipe.plugins.analysis import AnalysisProvider
from canarypipe.schemas.results import StageVerdict


class AnalysisExecutor(StageExecutor):
    """Runs an AnalysisEvaluator over the stage's checks.

    Restarts are read from the Kubernetes plugin for the variants that are
    live when the analysis starts; without a Kubernetes plugin only the
    check threshold gates the stage.

    HTTP checks fall back to a built-in HTTPProbe (using the plugin set's
    decrypter) unless a provider named "http" is configured.
    """

    def _providers(self) -> dict[str, AnalysisProvider]:
        providers = dict(self.ctx.plugins.providers)
        if DEFAULT_PROVIDER_NAME not in providers:
            providers[DEFAULT_PROVIDER_NAME] = HTTPProbe(decrypter=self.ctx.plugins.decrypter)
        return providers

    def _restart_source(self) -> RestartSource | None:
        plugin = self.ctx.plugins.k8s
        if plugin is None:
            return None
        variants = frozenset(self.ctx.live_variants)

        async def count_restarts() -> int:
            return await plugin.container_restarts(variants)

        return count_restarts

    async def execute(self) -> StageVerdict:
        options = resolve_templates(self.options, self.ctx.templates)
        evaluator = AnalysisEvaluator(
            options,
            self._providers(),
            restart_source=self._restart_source(),
            settings=self.ctx.settings,
        )
        verdict = await evaluator.run()
        details = verdict.model_dump(exclude={"state"}, exclude_none=True)
        if verdict.state is AnalysisState.SUCCEEDED:
            return self.succeeded(**details)
        return self.failed(verdict.to_error(), **details)


__all__ = ["AnalysisExecutor"]
