"""
Bounded polling.

The single primitive behind every wait in the pipeline: store readiness and
load balancer address assignment. Polling blocks the calling thread between
attempts and always terminates after ``attempts`` checks; running out of
attempts is a result, not an exception.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class PollResult:
    satisfied: bool
    attempts: int
    value: Any = None

    @property
    def timed_out(self) -> bool:
        return not self.satisfied


def poll(
    predicate: Callable[[], Any],
    *,
    attempts: int,
    interval: float,
    initial_delay: float = 0,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "condition",
) -> PollResult:
    """
    Call ``predicate`` until it returns a truthy value or attempts run out.

    Sleeps ``initial_delay`` once, then ``interval`` between attempts (not
    after the last one), so total sleeping is bounded by
    ``initial_delay + (attempts - 1) * interval``.

    Args:
        predicate: Zero-arg callable; a truthy return ends polling
        attempts: Maximum number of predicate calls (at least 1)
        interval: Seconds between attempts
        initial_delay: Seconds to wait before the first attempt
        sleep: Injected for tests
        label: Name used in progress logs

    Returns:
        PollResult with the last predicate value
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    if initial_delay > 0:
        sleep(initial_delay)

    value: Any = None
    for attempt in range(1, attempts + 1):
        value = predicate()
        if value:
            return PollResult(satisfied=True, attempts=attempt, value=value)
        logger.info("poll_waiting", condition=label, attempt=attempt, attempts=attempts)
        if attempt < attempts:
            sleep(interval)

    return PollResult(satisfied=False, attempts=attempts, value=value)
