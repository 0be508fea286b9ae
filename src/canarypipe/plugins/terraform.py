"""TerraformPlugin ABC for Terraform plan/apply plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from canarypipe.schemas.results import AdapterResult


class TerraformPlugin(ABC):
    """Abstract base class for Terraform plugins.

    Plan output is returned as AdapterResult.logs so the PLAN stage can
    surface the diff. Sequencing of plan before apply is the pipeline's
    job, not the plugin's.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Plugin name used in logs and error messages."""
        ...

    @abstractmethod
    async def plan(self, workspace: str) -> AdapterResult:
        """Run ``terraform plan`` in a workspace."""
        ...

    @abstractmethod
    async def apply(self, workspace: str) -> AdapterResult:
        """Run ``terraform apply`` in a workspace."""
        ...


__all__ = ["TerraformPlugin"]
