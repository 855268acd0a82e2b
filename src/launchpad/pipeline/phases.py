"""
Pipeline phase implementations.

Phase order:
1. provision - reconcile remote state, terraform apply
2. configure - kubeconfig, registry coordinates, registry login
3. build - first-pass build and push of every image
4. deploy - config, stores (+ readiness), services, gateway
5. discover_and_rewire - gateway address, frontend rewrite/rebuild/apply/restart
6. summarize - addresses and listings for the operator

Each phase takes the current PipelineState and returns an Outcome whose
value is the updated state. Failures are returned, not raised; the
sequencer decides what a failure means for the run.
"""

from __future__ import annotations

import time
from typing import Callable, Protocol

import structlog

from launchpad.config.deployment import (
    FrontendConfig,
    GatewayConfig,
    ImageSpec,
    ManifestStages,
    ReadinessConfig,
    SummaryConfig,
)
from launchpad.core.errors import ArtifactError, LaunchpadError, ProviderError
from launchpad.core.outcome import Outcome
from launchpad.discovery import NOT_AVAILABLE_DISPLAY, EndpointDiscoverer
from launchpad.pipeline.state import (
    PHASE_POLICIES,
    PhaseName,
    PhasePolicy,
    PipelineState,
    RunSummary,
)
from launchpad.polling import poll
from launchpad.providers.aws import AwsIdentity
from launchpad.providers.kubernetes import KubernetesCluster
from launchpad.providers.registry import ContainerRegistry
from launchpad.reconcile import RemoteStateReconciler
from launchpad.templating import ManifestTemplater

logger = structlog.get_logger()

RegistryFactory = Callable[[str], ContainerRegistry]


class Phase(Protocol):
    """Protocol for a pipeline phase."""

    @property
    def name(self) -> PhaseName:
        ...

    @property
    def policy(self) -> PhasePolicy:
        ...

    def run(self, state: PipelineState) -> Outcome:
        ...


class _BasePhase:
    name: PhaseName

    @property
    def policy(self) -> PhasePolicy:
        return PHASE_POLICIES[self.name]


def _degraded_or_ok(reasons: list[str], state: PipelineState) -> Outcome:
    if reasons:
        return Outcome.degraded("; ".join(reasons), value=state)
    return Outcome.ok(state)


class ProvisionPhase(_BasePhase):
    name = PhaseName.PROVISION

    def __init__(self, reconciler: RemoteStateReconciler):
        self.reconciler = reconciler

    def run(self, state: PipelineState) -> Outcome:
        outcome = self.reconciler.provision()
        if outcome.is_fatal:
            return Outcome.fatal(outcome.error, value=state)
        if outcome.is_degraded:
            return Outcome.degraded(outcome.reason, value=state)
        return Outcome.ok(state)


class ConfigurePhase(_BasePhase):
    """Credential and context setup."""

    name = PhaseName.CONFIGURE

    def __init__(
        self,
        identity: AwsIdentity,
        cluster_name: str,
        registry_factory: RegistryFactory,
        login: bool = True,
    ):
        self.identity = identity
        self.cluster_name = cluster_name
        self.registry_factory = registry_factory
        self.login = login

    def run(self, state: PipelineState) -> Outcome:
        try:
            self.identity.update_kubeconfig(self.cluster_name)
            account = self.identity.account_id()
            host = self.identity.registry_host(account)
            if self.login:
                self.registry_factory(host).login(self.identity.registry_password())
        except LaunchpadError as e:
            return Outcome.fatal(e, value=state)

        logger.info("registry_resolved", registry=host, cluster=self.cluster_name)
        return Outcome.ok(state.evolve(registry_host=host))


class BuildPhase(_BasePhase):
    """First pass: every image, no endpoint baked in yet."""

    name = PhaseName.BUILD

    def __init__(self, images: list[ImageSpec], registry_factory: RegistryFactory):
        self.images = images
        self.registry_factory = registry_factory

    def run(self, state: PipelineState) -> Outcome:
        if not state.registry_host:
            return Outcome.fatal(ArtifactError("Registry host not resolved"), value=state)
        registry = self.registry_factory(state.registry_host)
        for spec in self.images:
            try:
                state = state.with_image(registry.publish(spec))
            except LaunchpadError as e:
                return Outcome.fatal(e, value=state)
        return Outcome.ok(state)


class DeployPhase(_BasePhase):
    """Ordered manifest rollout: config, stores, services, gateway."""

    name = PhaseName.DEPLOY

    def __init__(
        self,
        cluster: KubernetesCluster,
        manifests: ManifestStages,
        readiness: ReadinessConfig,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cluster = cluster
        self.manifests = manifests
        self.readiness = readiness
        self.sleep = sleep

    def wait_for_stores(self) -> list[str]:
        """Best-effort readiness wait; returns a reason per store that timed out."""
        reasons = []
        for selector in self.readiness.selectors:
            result = poll(
                lambda s=selector: self.cluster.pods_ready(s, self.readiness.condition),
                attempts=self.readiness.attempts,
                interval=self.readiness.interval_seconds,
                sleep=self.sleep,
                label=f"pods -l {selector} {self.readiness.condition}",
            )
            if result.timed_out:
                reason = (
                    f"{selector} not {self.readiness.condition} "
                    f"after {self.readiness.timeout_seconds}s"
                )
                logger.warning("readiness_timeout", selector=selector, reason=reason)
                reasons.append(reason)
            else:
                logger.info("store_ready", selector=selector, attempts=result.attempts)
        return reasons

    def run(self, state: PipelineState) -> Outcome:
        reasons: list[str] = []
        for stage in ManifestStages.STAGES:
            logger.info("deploy_stage_started", stage=stage)
            for path in self.manifests.stage(stage):
                try:
                    self.cluster.apply_manifest(path)
                except LaunchpadError as e:
                    return Outcome.fatal(e, value=state)
                state = state.with_manifest(path.name)
            if stage == "stores":
                reasons.extend(self.wait_for_stores())
        return _degraded_or_ok(reasons, state)


class DiscoverAndRewirePhase(_BasePhase):
    """Second pass for the one artifact that embeds the gateway endpoint."""

    name = PhaseName.DISCOVER_AND_REWIRE

    def __init__(
        self,
        discoverer: EndpointDiscoverer,
        templater: ManifestTemplater,
        cluster: KubernetesCluster,
        registry_factory: RegistryFactory,
        frontend: FrontendConfig,
        gateway: GatewayConfig,
    ):
        self.discoverer = discoverer
        self.templater = templater
        self.cluster = cluster
        self.registry_factory = registry_factory
        self.frontend = frontend
        self.gateway = gateway

    def _publish_frontend(self, state: PipelineState, url: str) -> PipelineState:
        if not state.registry_host:
            raise ArtifactError("Registry host not resolved")
        ref = self.registry_factory(state.registry_host).publish(self.frontend.image_spec(url))
        return state.with_image(ref)

    def run(self, state: PipelineState) -> Outcome:
        endpoint = self.discoverer.discover()
        state = state.evolve(endpoint=endpoint)
        reasons: list[str] = []

        if endpoint.available:
            url = self.gateway.url_for(endpoint.address)
            rewrite = self.templater.rewire(endpoint.address)
            if not rewrite.rewritten:
                reasons.append(f"no prior endpoint reference found in {self.frontend.manifest}")
            state = state.evolve(frontend_rewired=rewrite.rewritten, frontend_gateway_url=url)
        else:
            # The image is still built so the deployment below has something to pull.
            url = self.gateway.url_for(endpoint.value)
            reasons.append(
                f"gateway address not assigned after {endpoint.attempts} attempts; "
                "frontend built with the unavailable placeholder, manifest unchanged"
            )

        try:
            state = self._publish_frontend(state, url)
            self.cluster.apply_manifest(self.templater.manifest)
            state = state.with_manifest(self.templater.manifest.name)
            self.cluster.rollout_restart(self.frontend.deployment)
        except LaunchpadError as e:
            return Outcome.fatal(e, value=state)

        return _degraded_or_ok(reasons, state)


class SummarizePhase(_BasePhase):
    """Status-only terminal phase; every query failure degrades to a placeholder."""

    name = PhaseName.SUMMARIZE

    def __init__(
        self,
        cluster: KubernetesCluster,
        gateway: GatewayConfig,
        frontend: FrontendConfig,
        summary: SummaryConfig,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cluster = cluster
        self.gateway = gateway
        self.frontend = frontend
        self.summary = summary
        self.sleep = sleep

    def _frontend_address(self, reasons: list[str]) -> str:
        try:
            return self.cluster.service_address(self.frontend.service)
        except ProviderError as e:
            reasons.append(f"frontend address query failed: {e.message}")
            return ""

    def _listing(self, kind: str, list_func: Callable[[], str], reasons: list[str]) -> str:
        try:
            return list_func()
        except ProviderError as e:
            reasons.append(f"{kind} listing failed: {e.message}")
            return NOT_AVAILABLE_DISPLAY

    def run(self, state: PipelineState) -> Outcome:
        reasons: list[str] = []
        if self.summary.settle_seconds > 0:
            self.sleep(self.summary.settle_seconds)

        endpoint = state.endpoint
        gateway_available = bool(endpoint and endpoint.available)
        frontend_address = self._frontend_address(reasons)

        summary = RunSummary(
            gateway_address=str(endpoint) if endpoint else NOT_AVAILABLE_DISPLAY,
            gateway_url=(
                self.gateway.url_for(endpoint.address)
                if gateway_available
                else NOT_AVAILABLE_DISPLAY
            ),
            frontend_gateway_url=state.frontend_gateway_url or NOT_AVAILABLE_DISPLAY,
            frontend_url=(
                f"http://{frontend_address}:{self.frontend.port}"
                if frontend_address
                else NOT_AVAILABLE_DISPLAY
            ),
            pods=self._listing("pods", self.cluster.list_pods, reasons),
            services=self._listing("services", self.cluster.list_services, reasons),
        )
        return _degraded_or_ok(reasons, state.evolve(summary=summary))
