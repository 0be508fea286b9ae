"""Unit test fixtures for canarypipe.

Unit tests:
- Run without external services (no cluster, no Terraform, no metrics backend)
- Use in-memory fake plugins that record every call
- Use millisecond durations so timing-dependent tests stay fast
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from canarypipe.config import RunnerSettings
from canarypipe.plugins import (
    AnalysisProvider,
    ApprovalAuthorizer,
    K8sDeployPlugin,
    PluginSet,
    SecretDecrypter,
    TerraformPlugin,
)
from canarypipe.schemas.options import AnalysisHTTP, AnalysisLog, AnalysisMetrics, Variant
from canarypipe.schemas.pipeline import K8sDeployTarget, K8sService
from canarypipe.schemas.results import AdapterResult, TrafficDistribution, VariantScale


@dataclass
class AdapterCall:
    """One recorded plugin call."""

    operation: str
    args: dict[str, Any] = field(default_factory=dict)


class FakeK8sPlugin(K8sDeployPlugin):
    """In-memory Kubernetes plugin.

    Attributes:
        calls: Every call in order.
        fail_on: Operations that return a failed AdapterResult.
        restarts: Value returned by container_restarts().
    """

    def __init__(self) -> None:
        self.calls: list[AdapterCall] = []
        self.fail_on: set[str] = set()
        self.raise_on: set[str] = set()
        self.restarts = 0

    @property
    def name(self) -> str:
        return "fake-k8s"

    def _result(self, operation: str) -> AdapterResult:
        if operation in self.raise_on:
            raise RuntimeError(f"{operation} exploded")
        if operation in self.fail_on:
            return AdapterResult(success=False, logs=[f"{operation} log"], error="boom")
        return AdapterResult(success=True, logs=[f"{operation} ok"])

    async def apply_manifests(
        self,
        variant: Variant,
        target: K8sDeployTarget | None,
        manifests: list[str],
        scale: VariantScale | None,
        suffix: str,
        with_service: bool,
    ) -> AdapterResult:
        self.calls.append(
            AdapterCall(
                "apply_manifests",
                {
                    "variant": variant,
                    "target": target,
                    "manifests": manifests,
                    "scale": scale,
                    "suffix": suffix,
                    "with_service": with_service,
                },
            )
        )
        return self._result("apply_manifests")

    async def cleanup_variant(
        self,
        variant: Variant,
        target: K8sDeployTarget | None,
        suffix: str,
    ) -> AdapterResult:
        self.calls.append(
            AdapterCall("cleanup_variant", {"variant": variant, "target": target, "suffix": suffix})
        )
        return self._result("cleanup_variant")

    async def route_traffic(
        self,
        distribution: TrafficDistribution,
        service: K8sService | None,
    ) -> AdapterResult:
        self.calls.append(
            AdapterCall("route_traffic", {"distribution": distribution, "service": service})
        )
        return self._result("route_traffic")

    async def container_restarts(self, variants: frozenset[Variant]) -> int:
        return self.restarts

    @property
    def operations(self) -> list[str]:
        """Operation names in call order."""
        return [call.operation for call in self.calls]


class FakeTerraformPlugin(TerraformPlugin):
    """In-memory Terraform plugin recording the workspaces it was called with."""

    def __init__(self) -> None:
        self.calls: list[AdapterCall] = []
        self.fail_on: set[str] = set()

    @property
    def name(self) -> str:
        return "fake-terraform"

    async def plan(self, workspace: str) -> AdapterResult:
        self.calls.append(AdapterCall("plan", {"workspace": workspace}))
        if "plan" in self.fail_on:
            return AdapterResult(success=False, error="plan failed")
        return AdapterResult(success=True, logs=["Plan: 1 to add, 0 to change, 0 to destroy."])

    async def apply(self, workspace: str) -> AdapterResult:
        self.calls.append(AdapterCall("apply", {"workspace": workspace}))
        if "apply" in self.fail_on:
            return AdapterResult(success=False, error="apply failed")
        return AdapterResult(success=True, logs=["Apply complete!"])


class FakeProvider(AnalysisProvider):
    """Analysis provider answering from a callable.

    Args:
        name: Provider name.
        answer: Called with each check; returns the pass/fail answer or
            raises. Defaults to always passing.
        delay: Seconds each query takes.
    """

    def __init__(
        self,
        name: str = "fake",
        answer: Callable[[Any], bool] | None = None,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self._answer = answer or (lambda check: True)
        self._delay = delay
        self.queries = 0

    @property
    def name(self) -> str:
        return self._name

    async def _query(self, check: Any) -> bool:
        self.queries += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        return self._answer(check)

    async def query_metric(self, check: AnalysisMetrics) -> bool:
        return await self._query(check)

    async def query_log(self, check: AnalysisLog) -> bool:
        return await self._query(check)

    async def query_http(self, check: AnalysisHTTP) -> bool:
        return await self._query(check)


class AllowListAuthorizer(ApprovalAuthorizer):
    """Authorizer allowing a fixed set of actors."""

    def __init__(self, allowed: set[str]) -> None:
        self.allowed = allowed

    def authorize(self, actor: str) -> bool:
        return actor in self.allowed


class ReversingDecrypter(SecretDecrypter):
    """Decrypter whose "ciphertext" is the reversed plaintext."""

    def decrypt(self, ciphertext: bytes) -> str:
        if not ciphertext:
            raise ValueError("empty ciphertext")
        return ciphertext.decode()[::-1]


@pytest.fixture
def settings() -> RunnerSettings:
    """Runner settings with millisecond intervals."""
    return RunnerSettings(
        default_check_interval="20ms",
        default_query_timeout="200ms",
        restart_poll_interval="10ms",
        default_terraform_workspace="default",
    )


@pytest.fixture
def k8s() -> FakeK8sPlugin:
    """Fake Kubernetes plugin."""
    return FakeK8sPlugin()


@pytest.fixture
def terraform() -> FakeTerraformPlugin:
    """Fake Terraform plugin."""
    return FakeTerraformPlugin()


@pytest.fixture
def provider() -> FakeProvider:
    """Always-passing analysis provider named "fake"."""
    return FakeProvider()


@pytest.fixture
def plugins(
    k8s: FakeK8sPlugin,
    terraform: FakeTerraformPlugin,
    provider: FakeProvider,
) -> PluginSet:
    """PluginSet wired with every fake."""
    return PluginSet(k8s=k8s, terraform=terraform, providers={provider.name: provider})


@pytest.fixture
def make_provider() -> type[FakeProvider]:
    """FakeProvider class, for tests that script their own answers."""
    return FakeProvider


@pytest.fixture
def make_authorizer() -> type[AllowListAuthorizer]:
    """AllowListAuthorizer class."""
    return AllowListAuthorizer


@pytest.fixture
def decrypter() -> ReversingDecrypter:
    """Decrypter whose ciphertext is the reversed plaintext."""
    return ReversingDecrypter()
