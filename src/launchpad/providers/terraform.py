"""
Terraform provisioning engine wrapper.

Terraform's state file can drift from what actually exists in the cloud
account (state deleted, resources created by hand, a previous run that died
half way). Import is therefore attempted for every managed resource before
apply, and the two expected import failures are classified rather than
treated as errors.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

import structlog

from launchpad.core.errors import ProvisioningError
from launchpad.runner import CommandRunner

logger = structlog.get_logger()

_ALREADY_MANAGED = re.compile(r"already managed by terraform", re.IGNORECASE)
_NOT_FOUND = re.compile(
    r"non-existent remote object|cannot find|does not exist|not found|RepositoryNotFound",
    re.IGNORECASE,
)


class ImportStatus(StrEnum):
    IMPORTED = "imported"
    ALREADY_MANAGED = "already_managed"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportResult:
    """Result of a single terraform import attempt."""

    address: str
    resource_id: str
    status: ImportStatus
    message: str = ""

    @property
    def benign(self) -> bool:
        """Whether the result is an expected, non-error outcome."""
        return self.status is not ImportStatus.FAILED


def classify_import_failure(output: str) -> ImportStatus:
    """Map terraform import error output to an ImportStatus."""
    if _ALREADY_MANAGED.search(output):
        return ImportStatus.ALREADY_MANAGED
    if _NOT_FOUND.search(output):
        return ImportStatus.NOT_FOUND
    return ImportStatus.FAILED


class TerraformProvider:
    """Runs terraform commands in one working directory."""

    def __init__(self, runner: CommandRunner, working_dir: Path, binary: str = "terraform"):
        self.runner = runner
        self.working_dir = working_dir
        self.binary = binary

    def init(self, extra_args: list[str] | None = None) -> None:
        """Initialize the working directory (providers, backend)."""
        result = self.runner.run(
            [self.binary, "init", "-input=false", *(extra_args or [])],
            cwd=self.working_dir,
        )
        result.raise_for_status(ProvisioningError)

    def import_resource(self, address: str, resource_id: str) -> ImportResult:
        """Adopt an existing remote object into a state address.

        Never raises for a non-zero exit; the outcome is classified instead.
        """
        result = self.runner.run(
            [self.binary, "import", "-input=false", address, resource_id],
            cwd=self.working_dir,
        )
        if result.success:
            return ImportResult(address, resource_id, ImportStatus.IMPORTED)

        output = f"{result.stderr}\n{result.stdout}".strip()
        status = classify_import_failure(output)
        return ImportResult(address, resource_id, status, message=output[:500])

    def apply(self) -> None:
        """Converge remote infrastructure to the declared state.

        No timeout: a cluster apply legitimately takes 15-20 minutes.
        """
        result = self.runner.run(
            [self.binary, "apply", "-auto-approve", "-input=false"],
            cwd=self.working_dir,
            stream=True,
        )
        result.raise_for_status(ProvisioningError)
