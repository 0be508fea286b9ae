"""Kubernetes rollout and cleanup stage executors.

- K8S_PRIMARY_OUT applies the new manifests to PRIMARY.
- K8S_STAGE_OUT / K8S_BASELINE_OUT roll out a STAGE (new version) or
  BASELINE (current version) variant sized by ``weight``.
- K8S_STAGE_IN / K8S_BASELINE_IN remove that variant again, using the
  suffix of the latest matching *_OUT stage before them in the pipeline.

Successful rollouts add the variant to the run's live variants;
successful cleanups remove it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from canarypipe.executors.base import StageExecutor
from canarypipe.schemas.options import (
    K8sBaselineOutStageOptions,
    K8sStageOutStageOptions,
    StageName,
    Variant,
)
from canarypipe.schemas.results import StageVerdict, VariantScale

if TYPE_CHECKING:
    from canarypipe.schemas.pipeline import K8sDeployTarget

DEFAULT_SUFFIXES: dict[Variant, str] = {
    Variant.STAGE: "stage",
    Variant.BASELINE: "baseline",
}
"""Resource name suffix used when no *_OUT stage configures one."""

_OUT_STAGES: dict[Variant, StageName] = {
    Variant.STAGE: StageName.K8S_STAGE_OUT,
    Variant.BASELINE: StageName.K8S_BASELINE_OUT,
}


class K8sPrimaryOutExecutor(StageExecutor):
    """Applies the configured manifests to the PRIMARY variant."""

    async def execute(self) -> StageVerdict:
        manifests = list(self.options.manifests)
        result = await self.call_adapter(
            "apply_manifests",
            self.k8s.apply_manifests(Variant.PRIMARY, None, manifests, None, "", False),
        )
        self.ctx.live_variants.add(Variant.PRIMARY)
        self._logger.info("variant_rolled_out", variant=Variant.PRIMARY.value)
        return self.succeeded(variant=Variant.PRIMARY.value, logs=result.logs)


class _VariantExecutor(StageExecutor):
    """Shared behavior of the STAGE/BASELINE executors."""

    variant: Variant

    def track_target(self) -> K8sDeployTarget | None:
        """Deployment target from the variant's track, if the pipeline declares one."""
        track = (
            self.ctx.pipeline.stage_track
            if self.variant is Variant.STAGE
            else self.ctx.pipeline.baseline_track
        )
        return track.target if track else None


class _VariantOutExecutor(_VariantExecutor):
    """Rolls out a STAGE or BASELINE variant."""

    async def execute(self) -> StageVerdict:
        options: K8sStageOutStageOptions | K8sBaselineOutStageOptions = self.options
        scale = VariantScale.from_weight(options.weight)
        suffix = options.suffix or DEFAULT_SUFFIXES[self.variant]
        result = await self.call_adapter(
            "apply_manifests",
            self.k8s.apply_manifests(
                self.variant, self.track_target(), [], scale, suffix, options.with_service
            ),
        )
        self.ctx.live_variants.add(self.variant)
        self._logger.info(
            "variant_rolled_out",
            variant=self.variant.value,
            scale_unit=scale.unit,
            scale_value=scale.value,
            suffix=suffix,
        )
        return self.succeeded(
            variant=self.variant.value,
            scale=scale.model_dump(),
            suffix=suffix,
            logs=result.logs,
        )


class _VariantInExecutor(_VariantExecutor):
    """Removes a STAGE or BASELINE variant."""

    def rollout_suffix(self) -> str:
        """Suffix of the latest *_OUT stage for this variant before this stage."""
        out_stage = _OUT_STAGES[self.variant]
        for stage in reversed(self.ctx.pipeline.stages[: self.ctx.stage_index]):
            if stage.name is out_stage:
                return stage.options.suffix or DEFAULT_SUFFIXES[self.variant]
        return DEFAULT_SUFFIXES[self.variant]

    async def execute(self) -> StageVerdict:
        suffix = self.rollout_suffix()
        result = await self.call_adapter(
            "cleanup_variant",
            self.k8s.cleanup_variant(self.variant, self.track_target(), suffix),
        )
        self.ctx.live_variants.discard(self.variant)
        self._logger.info("variant_cleaned_up", variant=self.variant.value, suffix=suffix)
        return self.succeeded(variant=self.variant.value, suffix=suffix, logs=result.logs)


class K8sStageOutExecutor(_VariantOutExecutor):
    """Rolls out the STAGE variant with the new version."""

    variant = Variant.STAGE


class K8sBaselineOutExecutor(_VariantOutExecutor):
    """Rolls out the BASELINE variant with the current version."""

    variant = Variant.BASELINE


class K8sStageInExecutor(_VariantInExecutor):
    """Removes the STAGE variant."""

    variant = Variant.STAGE


class K8sBaselineInExecutor(_VariantInExecutor):
    """Removes the BASELINE variant."""

    variant = Variant.BASELINE


__all__ = [
    "DEFAULT_SUFFIXES",
    "K8sBaselineInExecutor",
    "K8sBaselineOutExecutor",
    "K8sPrimaryOutExecutor",
    "K8sStageInExecutor",
    "K8sStageOutExecutor",
]
