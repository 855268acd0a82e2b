"""Phase sequencer: drives the pipeline state machine."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

import structlog

from launchpad.core.errors import ExitCode, PhaseFailedError
from launchpad.core.outcome import Outcome, OutcomeKind
from launchpad.pipeline.phases import Phase
from launchpad.pipeline.state import (
    PHASE_ORDER,
    Decision,
    PhaseState,
    PipelineState,
    decide,
    next_state,
)

logger = structlog.get_logger()

Announce = Callable[[int, int, Phase], None]


@dataclass(frozen=True)
class PhaseRecord:
    """How one phase ended."""

    phase: PhaseState
    kind: OutcomeKind
    decision: Decision
    reason: str | None = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "outcome": self.kind.value,
            "decision": self.decision.value,
            "reason": self.reason,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class RunReport:
    """Result of one pipeline run."""

    phases: list[PhaseRecord] = field(default_factory=list)
    state: PipelineState = field(default_factory=PipelineState)
    final: PhaseState = PhaseState.PROVISION
    error: PhaseFailedError | None = None
    duration_seconds: float = 0.0

    @property
    def completed(self) -> bool:
        return self.final is PhaseState.COMPLETED

    @property
    def degraded(self) -> bool:
        return any(r.kind is not OutcomeKind.OK for r in self.phases)

    @property
    def status(self) -> str:
        if not self.completed:
            return "aborted"
        return "degraded" if self.degraded else "ok"

    @property
    def exit_code(self) -> ExitCode:
        # Degraded runs still deliver a running system.
        if self.error is not None:
            return self.error.exit_code
        return ExitCode.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "final_state": self.final.value,
            "exit_code": int(self.exit_code),
            "duration_seconds": round(self.duration_seconds, 3),
            "error": str(self.error) if self.error else None,
            "phases": [r.to_dict() for r in self.phases],
            "state": self.state.to_dict(),
        }


class PhaseSequencer:
    """Runs phases in table order, applying each phase's failure policy."""

    def __init__(self, phases: Sequence[Phase], announce: Announce | None = None) -> None:
        self._phases = {phase.name: phase for phase in phases}
        missing = [p.value for p in PHASE_ORDER if p not in self._phases]
        if missing:
            raise ValueError(f"Missing phases: {', '.join(missing)}")
        self._announce = announce

    def _execute(self, phase: Phase, state: PipelineState) -> Outcome:
        try:
            return phase.run(state)
        except Exception as e:
            # Phases report failures as outcomes; anything that escapes is a bug
            # in the phase, still routed through its policy.
            logger.exception("phase_crashed", phase=phase.name.value)
            return Outcome.fatal(e, value=state)

    def run(self, initial: PipelineState | None = None) -> RunReport:
        report = RunReport(state=initial or PipelineState())
        started = time.monotonic()
        current = PhaseState.PROVISION
        total = len(PHASE_ORDER)

        while not current.terminal:
            phase = self._phases[current]
            step = PHASE_ORDER.index(current) + 1
            if self._announce:
                self._announce(step, total, phase)
            logger.info("phase_started", phase=current.value, step=step, total=total)

            phase_started = time.monotonic()
            outcome = self._execute(phase, report.state)
            if isinstance(outcome.value, PipelineState):
                report.state = outcome.value

            decision = decide(phase.policy, outcome.kind)
            report.phases.append(
                PhaseRecord(
                    phase=current,
                    kind=outcome.kind,
                    decision=decision,
                    reason=outcome.reason,
                    duration_seconds=time.monotonic() - phase_started,
                )
            )

            if outcome.is_ok:
                logger.info("phase_completed", phase=current.value)
            else:
                report.state = report.state.with_warning(f"{current.value}: {outcome.reason}")
                log = logger.error if decision is Decision.ABORT else logger.warning
                log(
                    "phase_degraded" if outcome.is_degraded else "phase_failed",
                    phase=current.value,
                    policy=phase.policy.value,
                    reason=outcome.reason,
                )

            if decision is Decision.ABORT:
                cause = outcome.error or RuntimeError(outcome.reason)
                report.error = PhaseFailedError(current.value, cause)

            current = next_state(current, decision)

        report.final = current
        report.duration_seconds = time.monotonic() - started
        logger.info("pipeline_finished", status=report.status, final_state=current.value)
        return report
