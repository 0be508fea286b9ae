"""TERRAFORM_PLAN and TERRAFORM_APPLY stage executors."""

from __future__ import annotations

from canarypipe.executors.base import StageExecutor
from canarypipe.schemas.results import StageVerdict


class _TerraformExecutor(StageExecutor):
    @property
    def workspace(self) -> str:
        """Workspace of the application, or the configured default."""
        return self.ctx.workspace or self.ctx.settings.default_terraform_workspace


class TerraformPlanExecutor(_TerraformExecutor):
    """Runs ``terraform plan`` and surfaces the plan output in the stage details."""

    async def execute(self) -> StageVerdict:
        workspace = self.workspace
        result = await self.call_adapter("terraform_plan", self.terraform.plan(workspace))
        self._logger.info("terraform_planned", workspace=workspace, log_lines=len(result.logs))
        return self.succeeded(workspace=workspace, plan=result.logs)


class TerraformApplyExecutor(_TerraformExecutor):
    """Runs ``terraform apply``."""

    async def execute(self) -> StageVerdict:
        workspace = self.workspace
        result = await self.call_adapter("terraform_apply", self.terraform.apply(workspace))
        self._logger.info("terraform_applied", workspace=workspace)
        return self.succeeded(workspace=workspace, logs=result.logs)


__all__ = ["TerraformApplyExecutor", "TerraformPlanExecutor"]
