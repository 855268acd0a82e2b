"""Wrappers for the external tools the pipeline drives."""

from launchpad.providers.aws import AwsIdentity
from launchpad.providers.kubernetes import KubernetesCluster
from launchpad.providers.registry import ContainerRegistry
from launchpad.providers.terraform import (
    ImportResult,
    ImportStatus,
    TerraformProvider,
    classify_import_failure,
)

__all__ = [
    "AwsIdentity",
    "ContainerRegistry",
    "ImportResult",
    "ImportStatus",
    "KubernetesCluster",
    "TerraformProvider",
    "classify_import_failure",
]
