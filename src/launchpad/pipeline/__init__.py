"""
Deployment pipeline.

Six phases run in a fixed order under an explicit state machine; each phase
reports an Outcome and the policy table decides whether the run continues.
"""

from launchpad.pipeline.builder import build_pipeline, make_runner
from launchpad.pipeline.phases import (
    BuildPhase,
    ConfigurePhase,
    DeployPhase,
    DiscoverAndRewirePhase,
    Phase,
    ProvisionPhase,
    SummarizePhase,
)
from launchpad.pipeline.sequencer import PhaseRecord, PhaseSequencer, RunReport
from launchpad.pipeline.state import (
    PHASE_ORDER,
    PHASE_POLICIES,
    POLICY_TABLE,
    TRANSITIONS,
    Decision,
    PhasePolicy,
    PhaseState,
    PipelineState,
    RunSummary,
)

__all__ = [
    "BuildPhase",
    "ConfigurePhase",
    "Decision",
    "DeployPhase",
    "DiscoverAndRewirePhase",
    "PHASE_ORDER",
    "PHASE_POLICIES",
    "POLICY_TABLE",
    "Phase",
    "PhasePolicy",
    "PhaseRecord",
    "PhaseSequencer",
    "PhaseState",
    "PipelineState",
    "ProvisionPhase",
    "RunReport",
    "RunSummary",
    "SummarizePhase",
    "TRANSITIONS",
    "build_pipeline",
    "make_runner",
]
