"""
Remote state reconciliation.

Binds declared infrastructure resources to remote objects that already
exist before the convergent apply runs. Import problems never stop the run;
apply failures always do.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from launchpad.config.deployment import InfrastructureConfig
from launchpad.core.errors import ProviderError
from launchpad.core.outcome import Outcome
from launchpad.providers.terraform import ImportResult, ImportStatus, TerraformProvider

logger = structlog.get_logger()


@dataclass(frozen=True)
class ManagedResource:
    """A remote object that may exist outside Terraform's state tracking."""

    name: str
    address: str


@dataclass
class ReconcileReport:
    """Per-resource import results from one reconciliation pass."""

    results: list[ImportResult] = field(default_factory=list)

    @property
    def failures(self) -> list[ImportResult]:
        return [r for r in self.results if not r.benign]

    def count(self, status: ImportStatus) -> int:
        return sum(1 for r in self.results if r.status is status)


class RemoteStateReconciler:
    """Adopts pre-existing resources, then converges with apply."""

    def __init__(self, terraform: TerraformProvider, infrastructure: InfrastructureConfig):
        self.terraform = terraform
        self.infrastructure = infrastructure

    @property
    def resources(self) -> list[ManagedResource]:
        return [
            ManagedResource(name=name, address=self.infrastructure.address_for(name))
            for name in self.infrastructure.managed_resources
        ]

    def reconcile(self) -> ReconcileReport:
        """Attempt to import every managed resource. Never raises."""
        report = ReconcileReport()
        for resource in self.resources:
            try:
                result = self.terraform.import_resource(resource.address, resource.name)
            except ProviderError as e:
                result = ImportResult(
                    resource.address, resource.name, ImportStatus.FAILED, message=e.message
                )
            report.results.append(result)

            if result.status is ImportStatus.IMPORTED:
                logger.info("resource_imported", resource=resource.name, address=resource.address)
            elif result.benign:
                logger.info("import_skipped", resource=resource.name, status=result.status.value)
            else:
                logger.warning(
                    "import_failed",
                    resource=resource.name,
                    address=resource.address,
                    reason=result.message,
                )
        return report

    def provision(self) -> Outcome:
        """init, reconcile, apply.

        Returns Fatal if init or apply fail, Degraded if any import failed
        for an unexpected reason, Ok otherwise. The report is the value.
        """
        try:
            self.terraform.init(self.infrastructure.init_args)
        except ProviderError as e:
            return Outcome.fatal(e)

        report = self.reconcile()

        logger.info("terraform_apply_started", working_dir=str(self.infrastructure.working_dir))
        try:
            self.terraform.apply()
        except ProviderError as e:
            return Outcome.fatal(e, value=report)

        if report.failures:
            names = ", ".join(r.resource_id for r in report.failures)
            return Outcome.degraded(f"import failed for: {names}", value=report)
        return Outcome.ok(report)
