"""Plugin interfaces for the external collaborators of the pipeline engine.

Available Plugin ABCs:
    K8sDeployPlugin: Manifest apply, variant cleanup, traffic routing
    TerraformPlugin: Terraform plan and apply
    AnalysisProvider: Metrics, log and HTTP checks
    ApprovalAuthorizer: Identity check for approval events
    SecretDecrypter: Decryption of sealed configuration values

PluginSet bundles the configured plugins for one pipeline run.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from canarypipe.plugins.analysis import AnalysisProvider
from canarypipe.plugins.identity import ApprovalAuthorizer
from canarypipe.plugins.k8s import K8sDeployPlugin
from canarypipe.plugins.secrets import SecretDecrypter
from canarypipe.plugins.terraform import TerraformPlugin


@dataclass(frozen=True)
class PluginSet:
    """The plugins available to a pipeline run.

    Attributes:
        k8s: Kubernetes deploy plugin (required by K8S_* stages).
        terraform: Terraform plugin (required by TERRAFORM_* stages).
        providers: Analysis providers keyed by the name checks reference.
        authorizer: Optional identity check for approval events.
        decrypter: Optional decrypter for sealed values.
    """

    k8s: K8sDeployPlugin | None = None
    terraform: TerraformPlugin | None = None
    providers: Mapping[str, AnalysisProvider] = field(default_factory=dict)
    authorizer: ApprovalAuthorizer | None = None
    decrypter: SecretDecrypter | None = None


__all__ = [
    "AnalysisProvider",
    "ApprovalAuthorizer",
    "K8sDeployPlugin",
    "PluginSet",
    "SecretDecrypter",
    "TerraformPlugin",
]
