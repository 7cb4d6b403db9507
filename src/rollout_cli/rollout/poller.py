"""Readiness polling.

Every readiness gate in the rollout is expressed through ReadinessPoller:
repeatedly evaluate a predicate against live cluster state at a fixed
interval until it holds or a budget (deadline or attempt count) runs out.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..errors import StoreError
from ..shared.logging import get_logger

logger = get_logger(__name__)

Predicate = Callable[[], bool]
AttemptCallback = Callable[[int, float, "str | None"], None]


class PollOutcome(Enum):
    """Outcome of a readiness wait."""

    READY = "ready"
    TIMED_OUT = "timed_out"


@dataclass
class PollResult:
    """Result of a readiness wait."""

    outcome: PollOutcome
    attempts: int = 0
    elapsed_seconds: float = 0.0
    last_error: str | None = None

    @property
    def ready(self) -> bool:
        return self.outcome == PollOutcome.READY


class ReadinessPoller:
    """Poll a predicate at a fixed interval."""

    def __init__(
        self,
        interval_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize poller.

        Args:
            interval_seconds: Seconds between evaluations (no backoff).
            clock: Monotonic clock, injectable for tests.
            sleep: Sleep function, injectable for tests.
        """
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.sleep = sleep

    def _evaluate(self, predicate: Predicate) -> tuple[bool, str | None]:
        try:
            return bool(predicate()), None
        except StoreError as e:
            return False, e.message

    def wait(
        self,
        predicate: Predicate,
        deadline_seconds: float,
        started_at: float | None = None,
        on_attempt: AttemptCallback | None = None,
    ) -> PollResult:
        """Poll until the predicate holds or the deadline passes.

        The predicate is always evaluated at least once, even when the
        deadline has already passed. Sleeps are clipped to the remaining
        budget so the wait never overruns the deadline.

        Args:
            predicate: Callable returning True once ready. StoreError counts as
                not ready.
            deadline_seconds: Time budget in seconds.
            started_at: Clock reading the deadline is measured from. Defaults
                to now; pass an earlier reading to share one budget across
                several waits.
            on_attempt: Optional callback called with (attempt, elapsed, error)
                after every failed evaluation.

        Returns:
            PollResult with outcome READY or TIMED_OUT.
        """
        start = self.clock() if started_at is None else started_at
        attempt = 0
        last_error: str | None = None

        while True:
            attempt += 1
            ok, error = self._evaluate(predicate)
            last_error = error or last_error
            elapsed = self.clock() - start

            if ok:
                return PollResult(PollOutcome.READY, attempt, elapsed, last_error)

            remaining = deadline_seconds - elapsed
            if remaining <= 0:
                logger.debug("poll_timed_out", attempts=attempt, elapsed=elapsed)
                return PollResult(PollOutcome.TIMED_OUT, attempt, elapsed, last_error)

            if on_attempt:
                on_attempt(attempt, elapsed, error)

            self.sleep(min(self.interval_seconds, remaining))

    def wait_attempts(
        self,
        predicate: Predicate,
        max_attempts: int,
        on_attempt: AttemptCallback | None = None,
    ) -> PollResult:
        """Poll until the predicate holds or max_attempts evaluations fail."""
        start = self.clock()
        last_error: str | None = None

        for attempt in range(1, max_attempts + 1):
            ok, error = self._evaluate(predicate)
            last_error = error or last_error
            elapsed = self.clock() - start
            if ok:
                return PollResult(PollOutcome.READY, attempt, elapsed, last_error)

            if on_attempt:
                on_attempt(attempt, elapsed, error)

            # Wait before next attempt (unless this was the last one)
            if attempt < max_attempts:
                self.sleep(self.interval_seconds)

        return PollResult(
            PollOutcome.TIMED_OUT,
            max_attempts,
            self.clock() - start,
            last_error,
        )

    def retry_forever(
        self,
        action: Callable[[], object],
        on_retry: Callable[[int, str], None] | None = None,
    ) -> int:
        """Run an action until it stops raising StoreError. No overall deadline.

        Returns:
            Number of attempts it took.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                action()
                return attempt
            except StoreError as e:
                if on_retry:
                    on_retry(attempt, e.message)
                self.sleep(self.interval_seconds)


def wait(
    predicate: Predicate,
    interval: float,
    deadline: float,
) -> PollResult:
    """Wait for a predicate with a fresh poller (see ReadinessPoller.wait)."""
    return ReadinessPoller(interval_seconds=interval).wait(predicate, deadline)
