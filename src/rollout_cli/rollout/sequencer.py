"""Ordered step execution with first-failure abort."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import click

from ..errors import HardFailure, StoreError
from ..shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Step:
    """A named pipeline step. Success means the action returned."""

    name: str
    action: Callable[[], object]


@dataclass
class SequenceResult:
    """Result of running a step sequence."""

    success: bool
    completed: list[str] = field(default_factory=list)
    failed_step: str | None = None
    error: str | None = None


class StepSequencer:
    """Run steps in order, stopping at the first hard failure.

    A store command error that escapes a step is treated as that step's hard
    failure. Soft failures are absorbed inside the steps themselves and never
    reach the sequencer.
    """

    def __init__(self, steps: list[Step]):
        self.steps = steps

    def run(self) -> SequenceResult:
        result = SequenceResult(success=True)
        total = len(self.steps)

        for index, step in enumerate(self.steps, start=1):
            click.echo(f"\n📋 Step {index}/{total}: {step.name}\n")
            logger.info("step_started", step=step.name, index=index, total=total)
            try:
                step.action()
            except (HardFailure, StoreError) as e:
                logger.error("step_failed", step=step.name, error=e.message)
                result.success = False
                result.failed_step = step.name
                result.error = e.message
                return result
            result.completed.append(step.name)
            logger.info("step_completed", step=step.name)

        return result
