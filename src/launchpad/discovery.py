"""
Endpoint discovery.

Cloud load balancers get their hostname asynchronously, minutes after the
Service object is created. The discoverer polls the Service status until
an address shows up or the attempt budget is spent; a timeout yields the
"unavailable" sentinel so the rest of the rollout can continue.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import structlog

from launchpad.config.deployment import GatewayConfig
from launchpad.core.errors import ProviderError
from launchpad.polling import poll
from launchpad.providers.kubernetes import KubernetesCluster

logger = structlog.get_logger()

UNAVAILABLE = "GATEWAY_URL_NOT_AVAILABLE"
NOT_AVAILABLE_DISPLAY = "not available"


@dataclass(frozen=True)
class DiscoveredEndpoint:
    """A runtime-assigned address, or the unavailable sentinel."""

    address: str | None
    attempts: int = 0

    @classmethod
    def unavailable(cls, attempts: int = 0) -> DiscoveredEndpoint:
        return cls(address=None, attempts=attempts)

    @property
    def available(self) -> bool:
        return bool(self.address)

    @property
    def value(self) -> str:
        """Address, or the sentinel placeholder when discovery timed out."""
        return self.address or UNAVAILABLE

    def url(self, scheme: str, port: int) -> str:
        if not self.available:
            return NOT_AVAILABLE_DISPLAY
        return f"{scheme}://{self.address}:{port}"

    def __str__(self) -> str:
        return self.address or NOT_AVAILABLE_DISPLAY


class EndpointDiscoverer:
    """Polls a Service's status for its external address."""

    def __init__(
        self,
        cluster: KubernetesCluster,
        gateway: GatewayConfig,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cluster = cluster
        self.gateway = gateway
        self.sleep = sleep

    def _query(self) -> str:
        try:
            return self.cluster.service_address(self.gateway.service)
        except ProviderError as e:
            # Service may not exist yet; treat as "not assigned" for this attempt.
            logger.debug("endpoint_query_failed", service=self.gateway.service, error=e.message)
            return ""

    def discover(self) -> DiscoveredEndpoint:
        result = poll(
            self._query,
            attempts=self.gateway.attempts,
            interval=self.gateway.interval_seconds,
            initial_delay=self.gateway.initial_delay_seconds,
            sleep=self.sleep,
            label=f"svc/{self.gateway.service} address",
        )
        if result.satisfied:
            logger.info(
                "endpoint_discovered",
                service=self.gateway.service,
                address=result.value,
                attempts=result.attempts,
            )
            return DiscoveredEndpoint(address=result.value, attempts=result.attempts)

        logger.warning(
            "endpoint_discovery_timeout",
            service=self.gateway.service,
            attempts=result.attempts,
            reason="load balancer address not assigned within attempt budget",
        )
        return DiscoveredEndpoint.unavailable(attempts=result.attempts)
