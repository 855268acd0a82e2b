"""Wires a DeploymentConfig into a ready-to-run PhaseSequencer."""

from __future__ import annotations

import time
from typing import Any, Callable

import structlog

from launchpad.config.deployment import DeploymentConfig
from launchpad.config.settings import Settings
from launchpad.discovery import EndpointDiscoverer
from launchpad.pipeline.phases import (
    BuildPhase,
    ConfigurePhase,
    DeployPhase,
    DiscoverAndRewirePhase,
    ProvisionPhase,
    SummarizePhase,
)
from launchpad.pipeline.sequencer import Announce, PhaseSequencer
from launchpad.providers.aws import AwsIdentity
from launchpad.providers.kubernetes import KubernetesCluster
from launchpad.providers.registry import ContainerRegistry
from launchpad.providers.terraform import TerraformProvider
from launchpad.reconcile import RemoteStateReconciler
from launchpad.runner import CommandRunner, DryRunRunner, SubprocessRunner
from launchpad.templating import ManifestTemplater

logger = structlog.get_logger()


def make_runner(dry_run: bool = False) -> CommandRunner:
    if dry_run:
        return DryRunRunner()
    return SubprocessRunner()


def _no_sleep(seconds: float) -> None:
    logger.debug("dry_run_sleep_skipped", seconds=seconds)


def make_sleep(dry_run: bool = False) -> Callable[[float], None]:
    """Dry runs have nothing to wait for."""
    return _no_sleep if dry_run else time.sleep


def make_cluster(
    config: DeploymentConfig,
    settings: Settings,
    runner: CommandRunner,
    dry_run: bool = False,
    core_api: Any = None,
) -> KubernetesCluster:
    return KubernetesCluster(
        runner,
        config.namespace,
        binary=settings.kubectl_bin,
        kubeconfig=settings.kubeconfig,
        context=settings.kube_context,
        core_api=core_api,
        dry_run=dry_run,
    )


def make_discoverer(
    config: DeploymentConfig,
    settings: Settings,
    runner: CommandRunner,
    sleep: Callable[[float], None] = time.sleep,
    dry_run: bool = False,
    core_api: Any = None,
) -> EndpointDiscoverer:
    cluster = make_cluster(config, settings, runner, dry_run=dry_run, core_api=core_api)
    return EndpointDiscoverer(cluster, config.gateway, sleep=sleep)


def make_templater(config: DeploymentConfig) -> ManifestTemplater:
    return ManifestTemplater(
        config.frontend_manifest,
        placeholder=config.frontend.placeholder,
        state_file=config.state_file,
    )


def build_pipeline(
    config: DeploymentConfig,
    settings: Settings,
    runner: CommandRunner,
    sleep: Callable[[float], None] = time.sleep,
    announce: Announce | None = None,
    dry_run: bool = False,
    core_api: Any = None,
    aws_session: Any = None,
) -> PhaseSequencer:
    """Assemble every phase for one deployment target.

    ``core_api`` and ``aws_session`` replace the Kubernetes and AWS clients
    that would otherwise be created on first use.
    """
    cluster = make_cluster(config, settings, runner, dry_run=dry_run, core_api=core_api)

    def registry_factory(host: str) -> ContainerRegistry:
        return ContainerRegistry(runner, host, binary=settings.docker_bin)

    terraform = TerraformProvider(
        runner, config.infrastructure.working_dir, binary=settings.terraform_bin
    )
    identity = AwsIdentity(
        runner, config.region, binary=settings.aws_bin, session=aws_session, dry_run=dry_run
    )

    phases = [
        ProvisionPhase(RemoteStateReconciler(terraform, config.infrastructure)),
        ConfigurePhase(identity, config.cluster, registry_factory),
        BuildPhase(config.images, registry_factory),
        DeployPhase(cluster, config.manifests, config.readiness, sleep=sleep),
        DiscoverAndRewirePhase(
            EndpointDiscoverer(cluster, config.gateway, sleep=sleep),
            make_templater(config),
            cluster,
            registry_factory,
            config.frontend,
            config.gateway,
        ),
        SummarizePhase(cluster, config.gateway, config.frontend, config.summary, sleep=sleep),
    ]
    return PhaseSequencer(phases, announce=announce)
