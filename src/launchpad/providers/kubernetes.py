"""
Cluster access for the deployment pipeline.

Manifests are applied and deployments restarted with kubectl, which handles
multi-document YAML and client-side merge. Status reads (load balancer
addresses, pod readiness, summary listings) go through the Kubernetes API.

All operations are scoped to a single namespace.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import urllib3
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

from launchpad.core.errors import ClusterError
from launchpad.runner import CommandRunner

logger = structlog.get_logger()


def _format_table(header: list[str], rows: list[list[str]]) -> str:
    """Column-aligned listing in the style of ``kubectl get``."""
    table = [header, *rows]
    widths = [max(len(row[i]) for row in table) for i in range(len(header))]
    return "\n".join(
        "   ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
        for row in table
    )


def _load_balancer_address(service: Any) -> str:
    status = service.status
    ingress = status.load_balancer.ingress if status and status.load_balancer else None
    if not ingress:
        return ""
    return ingress[0].hostname or ingress[0].ip or ""


def _pod_condition(pod: Any, condition: str) -> bool:
    conditions = (pod.status.conditions if pod.status else None) or []
    return any(
        c.type.lower() == condition.lower() and c.status == "True" for c in conditions
    )


def _pod_row(pod: Any) -> list[str]:
    statuses = (pod.status.container_statuses if pod.status else None) or []
    ready = sum(1 for s in statuses if s.ready)
    restarts = sum(s.restart_count or 0 for s in statuses)
    phase = (pod.status.phase if pod.status else None) or "Unknown"
    return [pod.metadata.name, f"{ready}/{len(statuses)}", phase, str(restarts)]


def _service_row(service: Any) -> list[str]:
    spec = service.spec
    kind = spec.type or "ClusterIP"
    pending = "<pending>" if kind == "LoadBalancer" else "<none>"
    ports = ",".join(f"{p.port}/{p.protocol or 'TCP'}" for p in (spec.ports or []))
    return [
        service.metadata.name,
        kind,
        spec.cluster_ip or "<none>",
        _load_balancer_address(service) or pending,
        ports or "<none>",
    ]


class KubernetesCluster:
    """Cluster operations used by the deployment pipeline.

    The API client is created on first use, after the configure phase has
    written the kubeconfig entry for the target cluster. ``dry_run`` skips
    API reads: addresses come back empty, stores report ready.
    """

    def __init__(
        self,
        runner: CommandRunner,
        namespace: str,
        binary: str = "kubectl",
        kubeconfig: str | None = None,
        context: str | None = None,
        core_api: Any = None,
        dry_run: bool = False,
    ):
        self.runner = runner
        self.namespace = namespace
        self.binary = binary
        self.kubeconfig = kubeconfig
        self.context = context
        self.dry_run = dry_run
        self._core_api = core_api

    def _core(self) -> Any:
        if self._core_api is None:
            try:
                config.load_kube_config(config_file=self.kubeconfig, context=self.context)
            except (ConfigException, OSError) as e:
                raise ClusterError(f"Failed to load Kubernetes config: {e}") from e
            self._core_api = client.CoreV1Api()
        return self._core_api

    def _kubectl(self, *args: str, timeout: float | None = None):
        return self.runner.run([self.binary, *args], timeout=timeout)

    def _read(self, action: str, func, *args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ApiException as e:
            raise ClusterError(
                f"Kubernetes API error ({action}): {e.status} {e.reason}",
                details={"status": e.status, "namespace": self.namespace},
            ) from e
        except urllib3.exceptions.HTTPError as e:
            raise ClusterError(f"Kubernetes API unreachable ({action}): {e}") from e

    def apply_manifest(self, path: Path) -> str:
        """Upsert the objects in a manifest file.

        Returns kubectl's summary output ("deployment.apps/x configured").
        """
        if not path.exists():
            raise ClusterError(f"Manifest not found: {path}", details={"manifest": str(path)})
        result = self._kubectl("apply", "-f", str(path))
        result.raise_for_status(ClusterError)
        logger.info("manifest_applied", manifest=path.name, namespace=self.namespace)
        return result.stdout.strip()

    def rollout_restart(self, deployment: str) -> None:
        """Force running pods to be replaced so they pull the new image."""
        result = self._kubectl(
            "rollout", "restart", f"deployment/{deployment}", "-n", self.namespace
        )
        result.raise_for_status(ClusterError)
        logger.info("rollout_restarted", deployment=deployment, namespace=self.namespace)

    def service_address(self, name: str) -> str:
        """External hostname (or IP) of a LoadBalancer service.

        Returns an empty string while the cloud provider has not assigned one.
        """
        if self.dry_run:
            logger.debug("dry_run_read_skipped", service=name)
            return ""
        service = self._read(
            f"read service {name}", self._core().read_namespaced_service, name, self.namespace
        )
        return _load_balancer_address(service)

    def pods_ready(self, selector: str, condition: str = "Ready") -> bool:
        """True when at least one pod matches and every match has ``condition``.

        Never raises; an API error counts as "not ready yet".
        """
        if self.dry_run:
            return True
        try:
            pods = self._read(
                f"list pods {selector}",
                self._core().list_namespaced_pod,
                self.namespace,
                label_selector=selector,
            )
        except ClusterError as e:
            logger.debug("readiness_check_failed", selector=selector, error=e.message)
            return False
        return bool(pods.items) and all(_pod_condition(p, condition) for p in pods.items)

    def list_pods(self) -> str:
        """Pod listing for the summary."""
        if self.dry_run:
            return ""
        pods = self._read("list pods", self._core().list_namespaced_pod, self.namespace)
        return _format_table(
            ["NAME", "READY", "STATUS", "RESTARTS"], [_pod_row(p) for p in pods.items]
        )

    def list_services(self) -> str:
        """Service listing, with external addresses, for the summary."""
        if self.dry_run:
            return ""
        services = self._read(
            "list services", self._core().list_namespaced_service, self.namespace
        )
        return _format_table(
            ["NAME", "TYPE", "CLUSTER-IP", "EXTERNAL-IP", "PORT(S)"],
            [_service_row(s) for s in services.items],
        )
