"""
Typed operation outcomes.

Every pipeline operation reports one of three results instead of raising
or silently swallowing failures:

- Ok: the operation did what was asked
- Degraded: the operation could not fully complete, but the run may continue
- Fatal: the operation failed and carries the causing exception

Whether a Degraded or Fatal outcome stops the run is decided by the phase
policy table in ``launchpad.pipeline.state``, not by the operation itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class OutcomeKind(StrEnum):
    OK = "ok"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass(frozen=True)
class Outcome:
    """Result of a single operation."""

    kind: OutcomeKind
    value: Any = None
    reason: str | None = None
    error: BaseException | None = None

    @classmethod
    def ok(cls, value: Any = None) -> Outcome:
        return cls(kind=OutcomeKind.OK, value=value)

    @classmethod
    def degraded(cls, reason: str, value: Any = None) -> Outcome:
        return cls(kind=OutcomeKind.DEGRADED, value=value, reason=reason)

    @classmethod
    def fatal(cls, error: BaseException, value: Any = None) -> Outcome:
        return cls(kind=OutcomeKind.FATAL, value=value, reason=str(error), error=error)

    @property
    def is_ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def is_degraded(self) -> bool:
        return self.kind is OutcomeKind.DEGRADED

    @property
    def is_fatal(self) -> bool:
        return self.kind is OutcomeKind.FATAL

