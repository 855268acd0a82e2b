"""
Pipeline state machine: named states, transition table, policy table, and
the immutable state value threaded from phase to phase.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from launchpad.core.outcome import OutcomeKind
from launchpad.discovery import DiscoveredEndpoint


class PhaseState(StrEnum):
    PROVISION = "provision"
    CONFIGURE = "configure"
    BUILD = "build"
    DEPLOY = "deploy"
    DISCOVER_AND_REWIRE = "discover_and_rewire"
    SUMMARIZE = "summarize"
    COMPLETED = "completed"
    ABORTED = "aborted"

    @property
    def terminal(self) -> bool:
        return self in (PhaseState.COMPLETED, PhaseState.ABORTED)


# Alias used where a state is known to be an executable phase.
PhaseName = PhaseState

TRANSITIONS: dict[PhaseState, PhaseState] = {
    PhaseState.PROVISION: PhaseState.CONFIGURE,
    PhaseState.CONFIGURE: PhaseState.BUILD,
    PhaseState.BUILD: PhaseState.DEPLOY,
    PhaseState.DEPLOY: PhaseState.DISCOVER_AND_REWIRE,
    PhaseState.DISCOVER_AND_REWIRE: PhaseState.SUMMARIZE,
    PhaseState.SUMMARIZE: PhaseState.COMPLETED,
}

PHASE_ORDER: tuple[PhaseState, ...] = tuple(TRANSITIONS)


class PhasePolicy(StrEnum):
    FATAL = "fatal"
    BEST_EFFORT = "best-effort"


class Decision(StrEnum):
    CONTINUE = "continue"
    ABORT = "abort"


PHASE_POLICIES: dict[PhaseState, PhasePolicy] = {
    PhaseState.PROVISION: PhasePolicy.FATAL,
    PhaseState.CONFIGURE: PhasePolicy.FATAL,
    PhaseState.BUILD: PhasePolicy.FATAL,
    PhaseState.DEPLOY: PhasePolicy.FATAL,
    PhaseState.DISCOVER_AND_REWIRE: PhasePolicy.FATAL,
    PhaseState.SUMMARIZE: PhasePolicy.BEST_EFFORT,
}

POLICY_TABLE: dict[tuple[PhasePolicy, OutcomeKind], Decision] = {
    (PhasePolicy.FATAL, OutcomeKind.OK): Decision.CONTINUE,
    (PhasePolicy.FATAL, OutcomeKind.DEGRADED): Decision.CONTINUE,
    (PhasePolicy.FATAL, OutcomeKind.FATAL): Decision.ABORT,
    (PhasePolicy.BEST_EFFORT, OutcomeKind.OK): Decision.CONTINUE,
    (PhasePolicy.BEST_EFFORT, OutcomeKind.DEGRADED): Decision.CONTINUE,
    (PhasePolicy.BEST_EFFORT, OutcomeKind.FATAL): Decision.CONTINUE,
}


def decide(policy: PhasePolicy, kind: OutcomeKind) -> Decision:
    return POLICY_TABLE[(policy, kind)]


def next_state(current: PhaseState, decision: Decision) -> PhaseState:
    if current.terminal:
        raise ValueError(f"No transition out of terminal state {current}")
    if decision is Decision.ABORT:
        return PhaseState.ABORTED
    return TRANSITIONS[current]


@dataclass(frozen=True)
class RunSummary:
    """What the operator sees at the end of a run."""

    gateway_address: str
    gateway_url: str
    frontend_gateway_url: str
    frontend_url: str
    pods: str = ""
    services: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "gateway_address": self.gateway_address,
            "gateway_url": self.gateway_url,
            "frontend_gateway_url": self.frontend_gateway_url,
            "frontend_url": self.frontend_url,
            "pods": self.pods,
            "services": self.services,
        }


@dataclass(frozen=True)
class PipelineState:
    """Values discovered so far, passed forward from phase to phase.

    Phases never mutate this; they return an updated copy.
    """

    registry_host: str | None = None
    published_images: tuple[str, ...] = ()
    applied_manifests: tuple[str, ...] = ()
    endpoint: DiscoveredEndpoint | None = None
    frontend_gateway_url: str | None = None
    frontend_rewired: bool = False
    summary: RunSummary | None = None
    warnings: tuple[str, ...] = field(default=())

    def evolve(self, **changes: Any) -> PipelineState:
        return replace(self, **changes)

    def with_manifest(self, manifest: str) -> PipelineState:
        return replace(self, applied_manifests=self.applied_manifests + (manifest,))

    def with_image(self, ref: str) -> PipelineState:
        return replace(self, published_images=self.published_images + (ref,))

    def with_warning(self, warning: str) -> PipelineState:
        return replace(self, warnings=self.warnings + (warning,))

    def to_dict(self) -> dict[str, Any]:
        return {
            "registry_host": self.registry_host,
            "published_images": list(self.published_images),
            "applied_manifests": list(self.applied_manifests),
            "endpoint": self.endpoint.value if self.endpoint else None,
            "endpoint_available": bool(self.endpoint and self.endpoint.available),
            "frontend_gateway_url": self.frontend_gateway_url,
            "frontend_rewired": self.frontend_rewired,
            "summary": self.summary.to_dict() if self.summary else None,
            "warnings": list(self.warnings),
        }
